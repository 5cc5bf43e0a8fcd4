# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Catan game server backend: accounts, sessions and the realtime channel."""

__version__ = "0.1.0"
