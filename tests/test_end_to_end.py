from __future__ import annotations

import base64


def test_session_upload_publish_read(client, password) -> None:
    session = client.post("/api/session", json={"password": password})
    assert session.status_code == 201
    token = session.json()["token"]
    headers = {"X-SESSION": token}

    cover = b"\x89PNG\r\n\x1a\n\x00\x00"
    assert len(cover) == 10
    data_uri = "data:image/png;base64," + base64.b64encode(cover).decode("ascii")
    upload = client.post("/api/upload-cover", json={"filename": "cover.png", "data": data_uri}, headers=headers)
    assert upload.status_code == 201
    url = upload.json()["url"]
    assert upload.json()["key"] in url

    fetched = client.get(url)
    assert fetched.status_code == 200
    assert fetched.content == cover
    assert fetched.headers["content-type"] == "image/png"

    published = client.post(
        "/api/books",
        json={
            "bookTitle": "Tides",
            "cover": url,
            "chapterTitle": "One",
            "body": "It began with the sea.",
        },
        headers=headers,
    )
    assert published.status_code == 201
    book_id = published.json()["bookId"]

    book = client.get(f"/api/books/{book_id}").json()
    assert len(book["chapters"]) == 1
    assert book["cover"] == url

    [summary] = client.get("/api/books").json()
    assert summary["id"] == book_id
    assert summary["chapter_count"] == 1


def test_health(client) -> None:
    assert client.get("/health").json()["status"] == "healthy"
