import pytest

from catan.auth.passwords import PasswordHasher
from catan.errors import Conflict, InvalidArgument, InvalidFormat, NotFound
from catan.services.account_service import AccountService

pytestmark = pytest.mark.anyio


async def test_create_account_then_lookup(accounts):
    acc = await accounts.create_account("donnis", "donnis@donnis.net", "password123")
    found = await accounts.find_account("donnis@donnis.net")
    assert found.snapshot() == acc.snapshot()
    assert "password" not in found.as_dict()


async def test_password_is_stored_hashed(accounts, repo):
    acc = await accounts.create_account("donnis", "donnis@donnis.net", "password123")
    _, stored = await repo.find_credentials("donnis")
    assert stored != "password123"
    assert stored.startswith("$argon2id$")
    assert acc.id > 0


@pytest.mark.parametrize(
    "username,email,password",
    [("", "a@b.co", "pw"), ("donnis", "", "pw"), ("donnis", "a@b.co", ""), (None, "a@b.co", "pw")],
)
async def test_create_account_requires_all_fields(accounts, username, email, password):
    with pytest.raises(InvalidArgument):
        await accounts.create_account(username, email, password)


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "a b@c.de", "@c.de"])
async def test_create_account_rejects_bad_email(accounts, email):
    with pytest.raises(InvalidFormat):
        await accounts.create_account("donnis", email, "password123")


@pytest.mark.parametrize("username", ["bad name!", "dash-name", "emoji🙂"])
async def test_create_account_rejects_bad_username(accounts, username):
    with pytest.raises(InvalidFormat):
        await accounts.create_account(username, "donnis@donnis.net", "password123")


async def test_same_email_twice_is_conflict(accounts):
    await accounts.create_account("donnis", "donnis@donnis.net", "password123")
    with pytest.raises(Conflict):
        await accounts.create_account("donnis2", "donnis@donnis.net", "password123")


async def test_verify_credentials_outcomes(accounts):
    acc = await accounts.create_account("donnis", "donnis@donnis.net", "password123")

    by_name = await accounts.verify_credentials("donnis", "password123")
    by_mail = await accounts.verify_credentials("donnis@donnis.net", "password123")
    assert by_name.snapshot() == acc.snapshot() == by_mail.snapshot()

    wrong_password = await accounts.verify_credentials("donnis", "nope")
    unknown_user = await accounts.verify_credentials("ghost", "password123")
    assert wrong_password is False
    assert unknown_user is False


async def test_update_rehashes_password(accounts):
    acc = await accounts.create_account("donnis", "donnis@donnis.net", "password123")
    await accounts.update_account(acc.id, {"password": "newpassword"})
    assert await accounts.verify_credentials("donnis", "password123") is False
    assert (await accounts.verify_credentials("donnis", "newpassword")).id == acc.id


async def test_update_rejects_empty_password_and_bad_formats(accounts):
    acc = await accounts.create_account("donnis", "donnis@donnis.net", "password123")
    with pytest.raises(InvalidArgument):
        await accounts.update_account(acc.id, {"password": ""})
    with pytest.raises(InvalidFormat):
        await accounts.update_account(acc.id, {"username": "bad name!"})
    with pytest.raises(InvalidFormat):
        await accounts.update_account(acc.id, {"email": "not-an-email"})
    with pytest.raises(InvalidArgument):
        await accounts.update_account(acc.id, {"nickname": "x"})


async def test_delete_account(accounts):
    acc = await accounts.create_account("donnis", "donnis@donnis.net", "password123")
    await accounts.delete_account(acc.id)
    assert await accounts.get_account(acc.id) is None
    with pytest.raises(NotFound):
        await accounts.delete_account(acc.id)


class CountingHasher(PasswordHasher):
    def __init__(self):
        super().__init__(time_cost=1, memory_cost=8, parallelism=1)
        self.verified = 0

    async def verify(self, plain, hash_value):
        self.verified += 1
        return await super().verify(plain, hash_value)


async def test_unknown_user_still_runs_password_check(repo):
    hasher = CountingHasher()
    service = AccountService(repo, hasher)
    await service.create_account("donnis", "donnis@donnis.net", "password123")

    assert await service.verify_credentials("donnis", "wrong") is False
    assert hasher.verified == 1
    assert await service.verify_credentials("ghost", "wrong") is False
    assert await service.verify_credentials("ghost", "password123") is False
    assert hasher.verified == 3
