# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Domain error taxonomy.

Every failure that crosses a layer boundary is one of these. The HTTP layer
only maps ``code``/``status_code`` to a response and adds no logic of its own.
"""

from __future__ import annotations


class CatanError(Exception):
    code = "Unexpected"
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidArgument(CatanError):
    code = "InvalidArgument"
    status_code = 400
    default_message = "Invalid argument"


class InvalidFormat(CatanError):
    code = "InvalidFormat"
    status_code = 400
    default_message = "Invalid format"


class Conflict(CatanError):
    code = "Conflict"
    status_code = 400
    default_message = "Record already exists"


class DuplicateAccount(Conflict):
    default_message = "Username or email already exists"


class Unauthorized(CatanError):
    code = "Unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class NotFound(CatanError):
    code = "NotFound"
    status_code = 404
    default_message = "Not found"


class Unexpected(CatanError):
    pass
