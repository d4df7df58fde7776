import io
import aiosmtplib


def _upload(client, caption="Test", filename="panel.jpg", content=b"\xff\xd8fake-jpeg"):
    return client.post(
        "/upload",
        data={"caption": caption, "media": (io.BytesIO(content), filename)},
        content_type="multipart/form-data",
    )


def _seed_post(store, caption="Test"):
    return store.insert("posts", {"media_url": "https://res.cloudinary.com/demo/p.jpg", "caption": caption})


# --- UPLOAD ---
def test_upload_creates_post(client, store, relay):
    response = _upload(client)

    assert response.status_code == 201
    data = response.get_json()
    assert data["success"] is True

    posts = store.list("posts")
    assert len(posts) == 1
    assert posts[0]["id"] == data["id"]
    assert posts[0]["caption"] == "Test"
    assert posts[0]["media_url"] == data["media_url"]
    assert relay.uploads == [("panel.jpg", b"\xff\xd8fake-jpeg")]


def test_upload_relay_failure_creates_no_post(client, store, relay):
    relay.fail = True

    response = _upload(client)

    assert response.status_code == 502
    assert response.get_json()["success"] is False
    assert store.list("posts") == []


def test_upload_missing_media(client, store):
    response = client.post("/upload", data={"caption": "Test"}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert store.list("posts") == []


def test_upload_missing_caption(client, store):
    response = client.post(
        "/upload",
        data={"media": (io.BytesIO(b"abc"), "a.png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert store.list("posts") == []


def test_upload_allows_empty_caption(client, store):
    response = _upload(client, caption="")
    assert response.status_code == 201
    assert store.list("posts")[0]["caption"] == ""


# --- LIST ---
def test_posts_listed_in_creation_order(client):
    assert client.get("/posts").get_json() == []

    _upload(client, caption="first", filename="1.jpg")
    _upload(client, caption="second", filename="2.jpg")

    posts = client.get("/posts").get_json()
    assert [p["caption"] for p in posts] == ["first", "second"]
    assert all(p["approved"] is False for p in posts)


def test_get_post(client, store):
    post_id = _seed_post(store)

    assert client.get(f"/posts/{post_id}").get_json()["caption"] == "Test"
    assert client.get("/posts/99").status_code == 404


# --- APPROVE ---
def test_approve_sends_notification(client, store, mock_smtp):
    post_id = _seed_post(store)

    response = client.post("/approve", json={"id": post_id})

    assert response.status_code == 200
    assert response.get_json() == {"success": True}
    assert store.get("posts", id=post_id)["approved"] is True

    msg = mock_smtp.call_args.args[0]
    assert msg["Subject"] == "Post Approved"
    assert msg["To"] == "admin@example.com"
    assert f"Post ID {post_id} has been approved." in msg.get_content()


def test_approve_persists_when_notification_fails(client, store, mock_smtp):
    post_id = _seed_post(store)
    mock_smtp.side_effect = aiosmtplib.SMTPException("mailbox unavailable")

    response = client.post("/approve", json={"id": post_id})

    assert response.status_code == 200
    assert response.get_json()["success"] is True
    assert store.get("posts", id=post_id)["approved"] is True


def test_approve_with_path_id_and_approver(client, store, mock_smtp):
    post_id = _seed_post(store)

    response = client.post(f"/approve/{post_id}", json={"approvedBy": "dana", "comments": "Looks great"})

    assert response.status_code == 200
    post = store.get("posts", id=post_id)
    assert post["approved_by"] == "dana"
    assert post["comments"] == "Looks great"
    body = mock_smtp.call_args.args[0].get_content()
    assert "Approved by: dana" in body


def test_approve_unknown_post(client, mock_smtp):
    response = client.post("/approve", json={"id": 42})
    assert response.status_code == 404
    assert response.get_json()["success"] is False
    mock_smtp.assert_not_called()


def test_approve_invalid_id(client):
    assert client.post("/approve", json={}).status_code == 400
    assert client.post("/approve", json={"id": "abc"}).status_code == 400


# --- COMMENT ---
def test_comment_overwrites_previous(client, store, mock_smtp):
    post_id = _seed_post(store)

    client.post("/comment", json={"id": post_id, "comment": "Brighter photo please"})
    response = client.post("/comment", json={"id": post_id, "comment": "Use the van shot"})

    assert response.status_code == 200
    assert store.get("posts", id=post_id)["comments"] == "Use the van shot"

    msg = mock_smtp.call_args.args[0]
    assert msg["Subject"] == "New Comment"
    assert f"Comment on post {post_id}: Use the van shot" in msg.get_content()


def test_comment_accepts_form_body(client, store):
    post_id = _seed_post(store)
    response = client.post("/comment", data={"id": str(post_id), "comment": "ok"})
    assert response.status_code == 200
    assert store.get("posts", id=post_id)["comments"] == "ok"


def test_comment_missing_fields(client, store):
    post_id = _seed_post(store)
    response = client.post("/comment", json={"id": post_id})
    assert response.status_code == 400
    assert store.get("posts", id=post_id)["comments"] is None


def test_comment_unknown_post(client):
    response = client.post("/comment", json={"id": 7, "comment": "hello"})
    assert response.status_code == 404


# --- BACKGROUND NOTIFICATIONS ---
def test_background_notification_failure_is_logged(store, relay, captioner, mock_smtp, mocker, caplog):
    from postdesk.gateway.server import create_app
    from postdesk.notify_service.mailer import Notifier

    notifier = Notifier("smtp.example.com", 587, "bot@example.com", "secret", "admin@example.com")
    spy = mocker.spy(notifier, "dispatch")
    app = create_app(store=store, relay=relay, notifier=notifier, captioner=captioner)
    mock_smtp.side_effect = aiosmtplib.SMTPException("relay denied")
    post_id = _seed_post(store)

    response = app.test_client().post("/approve", json={"id": post_id})
    spy.spy_return.join(timeout=5)

    assert response.get_json() == {"success": True}
    assert store.get("posts", id=post_id)["approved"] is True
    assert "Could not deliver 'Post Approved'" in caplog.text


# --- ERRORS ---
def test_unexpected_error_returns_generic_failure(client, store, mocker):
    mocker.patch.object(store, "list", side_effect=RuntimeError("connection reset"))

    response = client.get("/posts")

    assert response.status_code == 500
    assert response.get_json() == {"success": False, "message": "Internal server error"}
