import asyncio
import io
import os
import re

import pytest
from fastapi import UploadFile

from libshare.api.routes import read_upload
from libshare.core.config import settings
from libshare.domain.exceptions import ValidationError

BOOK_LINK = re.compile(r'href="/books/(\d+)"')


def _book_ids(response):
    return sorted({int(book_id) for book_id in BOOK_LINK.findall(response.text)})


def _only_book_id(client):
    ids = _book_ids(client.get("/"))
    assert len(ids) == 1
    return ids[0]


def _login(client, username="alice", password="pw1"):
    client.cookies.clear()
    return client.post(
        "/login",
        data={"username": username, "password": password},
        follow_redirects=False,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_register_upload_and_search(client, signup, upload):
    signup()
    assert _login(client).status_code == 302

    response = upload(title="Foo", tags="sci-fi,drama")
    assert response.status_code == 302
    assert response.headers["location"] == "/profile"
    book_id = _only_book_id(client)

    by_tag = client.get("/search", params={"tags": "sci-fi"})
    assert by_tag.status_code == 200
    assert _book_ids(by_tag) == [book_id]

    by_title = client.get("/search", params={"q": "Foo"})
    assert _book_ids(by_title) == [book_id]

    nothing = client.get("/search", params={"q": "bar"})
    assert _book_ids(nothing) == []
    assert "No books found." in nothing.text

    home = client.get("/")
    assert "#sci-fi" in home.text and "#drama" in home.text


def test_upload_stores_file_and_cover(client, signup, upload, storage_path):
    signup()
    response = upload(filename="foo.txt", content=b"hello", cover=("c.png", b"img", "image/png"))
    assert response.status_code == 302

    with open(os.path.join(storage_path, "uploads", "1_foo.txt"), "rb") as f:
        assert f.read() == b"hello"
    with open(os.path.join(storage_path, "images", "cover_1_c.png"), "rb") as f:
        assert f.read() == b"img"

    book_id = _only_book_id(client)
    detail = client.get(f"/books/{book_id}")
    assert "/static/images/cover_1_c.png" in detail.text
    assert client.get("/static/uploads/1_foo.txt").content == b"hello"


@pytest.mark.parametrize("path", ["/upload", "/profile", "/edit-profile"])
def test_protected_pages_redirect_to_login(client, path):
    response = client.get(path, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/login"


def test_protected_post_redirects_to_login(client):
    response = client.post("/books/1/delete", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/login"


@pytest.mark.parametrize("path", ["/login", "/register"])
def test_account_pages_redirect_when_logged_in(client, signup, path):
    assert client.get(path).status_code == 200

    signup()
    response = client.get(path, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/"


def test_bad_credentials(client, signup):
    signup()
    wrong_password = _login(client, password="nope")
    assert wrong_password.status_code == 401
    assert wrong_password.text == "Invalid credentials"
    assert _login(client, username="nobody").status_code == 401


def test_duplicate_registration_is_rejected(client, signup):
    signup()
    client.cookies.clear()
    response = client.post(
        "/register",
        data={"username": "alice", "email": "other@x.com", "password": "pw"},
        follow_redirects=False,
    )
    assert response.status_code == 400
    assert response.text == "Registration failed"


def test_logout_revokes_session(client, signup):
    signup()
    token = client.cookies.get("session_id")
    assert client.get("/profile", follow_redirects=False).status_code == 200

    response = client.post("/logout", follow_redirects=False)
    assert response.status_code == 302
    assert "max-age=0" in response.headers["set-cookie"].lower()

    # replaying the old cookie no longer works
    response = client.get(
        "/profile", headers={"Cookie": f"session_id={token}"}, follow_redirects=False
    )
    assert response.status_code == 302
    assert response.headers["location"] == "/login"


def test_rating_requires_session_and_valid_value(client, signup, upload):
    signup()
    upload()
    book_id = _only_book_id(client)

    for bad in ("0", "6", "abc", ""):
        response = client.post(f"/books/{book_id}/rate", data={"rating": bad}, follow_redirects=False)
        assert response.status_code == 400
        assert response.text == "Invalid rating"

    client.cookies.clear()
    response = client.post(f"/books/{book_id}/rate", data={"rating": "3"}, follow_redirects=False)
    assert response.status_code == 401
    assert response.text == "Not authorized"


def test_two_users_rating_aggregate(client, signup, upload):
    signup()
    upload()
    book_id = _only_book_id(client)
    response = client.post(f"/books/{book_id}/rate", data={"rating": "4"}, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == f"/books/{book_id}"

    signup("bob", "b@x.com", "pw2")
    client.post(f"/books/{book_id}/rate", data={"rating": "2"})
    # re-rating replaces the earlier value
    client.post(f"/books/{book_id}/rate", data={"rating": "2"})

    detail = client.get(f"/books/{book_id}")
    assert "3.0 from 2 ratings" in detail.text
    assert re.search(r'value="2"\s+checked', detail.text)


def test_rating_unknown_book(client, signup):
    signup()
    response = client.post("/books/99/rate", data={"rating": "3"}, follow_redirects=False)
    assert response.status_code == 404


def test_unknown_book_is_404(client):
    response = client.get("/books/99")
    assert response.status_code == 404
    assert response.text == "Book not found"
    assert client.get("/books/99/read").status_code == 404


def test_non_owner_cannot_edit_or_delete(client, signup, upload):
    signup()
    upload()
    book_id = _only_book_id(client)

    signup("bob", "b@x.com", "pw2")
    assert client.get(f"/books/{book_id}/edit", follow_redirects=False).status_code == 403
    response = client.post(
        f"/books/{book_id}/update",
        data={"title": "Hacked", "author": "x"},
        follow_redirects=False,
    )
    assert response.status_code == 403
    response = client.post(f"/books/{book_id}/delete", follow_redirects=False)
    assert response.status_code == 403
    assert response.text == "Forbidden"

    assert "Foo" in client.get(f"/books/{book_id}").text


def test_owner_delete_removes_row_and_file(client, signup, upload, storage_path):
    signup()
    upload(filename="gone.txt")
    book_id = _only_book_id(client)
    path = os.path.join(storage_path, "uploads", "1_gone.txt")
    assert os.path.exists(path)

    response = client.post(f"/books/{book_id}/delete", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/profile"
    assert not os.path.exists(path)
    assert client.get(f"/books/{book_id}").status_code == 404


def test_read_and_edit_text_book(client, signup, upload, storage_path):
    signup()
    upload(filename="story.txt", content=b"Once upon a time")
    book_id = _only_book_id(client)

    read = client.get(f"/books/{book_id}/read")
    assert read.status_code == 200
    assert "Once upon a time" in read.text

    edit_page = client.get(f"/books/{book_id}/edit")
    assert edit_page.status_code == 200
    assert "Once upon a time" in edit_page.text

    response = client.post(
        f"/books/{book_id}/update",
        data={"title": "Bar", "author": "Ann", "tags": "poetry", "content": "The end"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"] == f"/books/{book_id}"

    with open(os.path.join(storage_path, "uploads", "1_story.txt"), encoding="utf-8") as f:
        assert f.read() == "The end"
    detail = client.get(f"/books/{book_id}")
    assert "Bar" in detail.text and "#poetry" in detail.text


def test_binary_book_is_offered_for_download(client, signup, upload):
    signup()
    upload(filename="foo.pdf", content=b"%PDF-1.4")
    book_id = _only_book_id(client)

    read = client.get(f"/books/{book_id}/read")
    assert read.status_code == 200
    assert "cannot be shown in the browser" in read.text
    assert "/static/uploads/1_foo.pdf" in read.text


def test_oversized_upload_is_rejected(client, signup, upload, storage_path):
    signup()
    response = upload(content=b"x" * (1024 * 1024 + 1))
    assert response.status_code == 400
    assert response.text == "File too large"
    assert _book_ids(client.get("/")) == []


def test_profile_lists_own_books(client, signup, upload):
    signup()
    upload(title="Mine")
    signup("bob", "b@x.com", "pw2")
    upload(title="Theirs")

    profile = client.get("/profile")
    assert profile.status_code == 200
    assert "Theirs" in profile.text
    assert "Mine" not in profile.text


def test_profile_update_requires_current_password(client, signup):
    signup()
    response = client.post("/update-profile", data={"username": "alicia"}, follow_redirects=False)
    assert response.status_code == 400
    assert response.text == "Invalid current password"

    response = client.post(
        "/update-profile",
        data={"username": "alicia", "current_password": "wrong"},
        follow_redirects=False,
    )
    assert response.status_code == 400

    response = client.post(
        "/update-profile",
        data={"username": "alicia", "current_password": "pw1", "new_password": "pw9"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"] == "/profile"
    assert "alicia" in client.get("/profile").text

    assert _login(client, "alicia", "pw1").status_code == 401
    assert _login(client, "alicia", "pw9").status_code == 302


def test_profile_username_conflict(client, signup):
    signup("bob", "b@x.com", "pw2")
    signup()
    response = client.post(
        "/update-profile",
        data={"username": "bob", "current_password": "pw1"},
        follow_redirects=False,
    )
    assert response.status_code == 400
    assert response.text == "Failed to update profile"


def test_avatar_upload_without_password(client, signup, storage_path):
    signup()
    response = client.post(
        "/update-profile",
        files={"avatar": ("me.png", b"png-bytes", "image/png")},
        follow_redirects=False,
    )
    assert response.status_code == 302

    with open(os.path.join(storage_path, "avatars", "avatar_1.png"), "rb") as f:
        assert f.read() == b"png-bytes"
    assert "/static/avatars/avatar_1.png" in client.get("/profile").text


def test_oversized_avatar_leaves_account_unchanged(client, signup):
    signup()
    response = client.post(
        "/update-profile",
        data={"username": "alicia", "current_password": "pw1", "new_password": "pw9"},
        files={"avatar": ("me.png", b"x" * (1024 * 1024 + 1), "image/png")},
        follow_redirects=False,
    )
    assert response.status_code == 400
    assert response.text == "File too large"

    assert _login(client, "alice", "pw1").status_code == 302
    assert _login(client, "alicia", "pw9").status_code == 401


def test_declared_upload_size_is_checked_before_reading():
    class UnreadableFile(io.BytesIO):
        def read(self, *args):
            raise AssertionError("oversized upload was read")

    upload = UploadFile(
        file=UnreadableFile(), filename="big.txt", size=settings.max_upload_bytes + 1
    )
    with pytest.raises(ValidationError, match="File too large"):
        asyncio.run(read_upload(upload))
