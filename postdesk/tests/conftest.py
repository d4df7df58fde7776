import pytest

from postdesk.database.store import INSERTABLE, UPDATABLE, LOOKUP
from postdesk.errors import DuplicateKey, NotFound, UploadFailed, ValidationError
from postdesk.gateway.server import create_app
from postdesk.notify_service.mailer import Notifier


class FakeStore:
    """
    In-memory stand-in for Store with the same column rules and errors.
    """

    def __init__(self):
        self.tables = {"users": [], "posts": []}

    def insert(self, table, fields):
        if set(fields) - INSERTABLE[table]:
            raise ValidationError("bad columns")
        if table == "users" and any(r["username"] == fields["username"] for r in self.tables["users"]):
            raise DuplicateKey("Duplicate value in users")
        row = {"id": len(self.tables[table]) + 1, **fields}
        if table == "posts":
            row = {"approved": False, "approved_by": None, "comments": None, **row}
        self.tables[table].append(row)
        return row["id"]

    def get(self, table, **predicate):
        if set(predicate) - LOOKUP[table]:
            raise ValidationError("bad columns")
        for row in self.tables[table]:
            if all(row.get(k) == v for k, v in predicate.items()):
                return dict(row)
        return None

    def update(self, table, row_id, fields):
        if set(fields) - UPDATABLE[table]:
            raise ValidationError("bad columns")
        for row in self.tables[table]:
            if row["id"] == row_id:
                row.update(fields)
                return
        raise NotFound(f"No row in {table} with id {row_id}")

    def list(self, table):
        return [dict(r) for r in self.tables[table]]


class FakeRelay:
    def __init__(self):
        self.fail = False
        self.uploads = []

    def relay(self, data, filename=None):
        if self.fail:
            raise UploadFailed("Media host rejected the upload")
        if not data:
            raise UploadFailed("No media provided")
        self.uploads.append((filename, data))
        return f"https://res.cloudinary.com/demo/image/upload/v1/{filename}"


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def notifier():
    # Inline delivery so tests can observe the outcome without joining threads
    return Notifier(
        host="smtp.example.com",
        port=587,
        username="bot@example.com",
        password="secret",
        recipient="admin@example.com",
        background=False,
    )


@pytest.fixture
def captioner(mocker):
    captioner = mocker.Mock()
    captioner.suggest.return_value = "Powering your home safely!"
    return captioner


@pytest.fixture
def app(store, relay, notifier, captioner):
    app = create_app(store=store, relay=relay, notifier=notifier, captioner=captioner)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def mock_smtp(mocker):
    """
    Mocks aiosmtplib.send so notifications never touch the network.
    The sent EmailMessage is the first positional argument of each call.
    """
    return mocker.patch(
        "postdesk.notify_service.mailer.aiosmtplib.send",
        new_callable=mocker.AsyncMock,
    )
