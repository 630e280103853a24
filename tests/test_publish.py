from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import pytest

from bookshelf.core.kv import MemoryKeyValueStore
from bookshelf.schemas.book import PublishRequest
from bookshelf.reader.session import ReaderSession
from bookshelf.services.book_service import public_reader_url, publish_chapter


def _payload(**overrides) -> dict:
    payload = {
        "bookTitle": "The Lighthouse",
        "bookDesc": "A short novel",
        "chapterTitle": "Arrival",
        "body": "First paragraph.\n\nSecond paragraph.",
        "mode": "novel",
    }
    payload.update(overrides)
    return payload


def _publish(client, token, **overrides):
    return client.post("/api/books", json=_payload(**overrides), headers={"X-SESSION": token})


def _stored(kv, book_id: str) -> dict:
    return json.loads(asyncio.run(kv.get(f"book:{book_id}")))


def test_publish_new_book(client, kv, token) -> None:
    response = _publish(client, token)
    assert response.status_code == 201
    body = response.json()
    assert body["publicUrl"] == f"/reader.html?id={body['bookId']}&chapter={body['chapterId']}"

    book = _stored(kv, body["bookId"])
    assert book["title"] == "The Lighthouse"
    assert book["description"] == "A short novel"
    assert book["cover"] == ""
    assert book["created_at"] == book["updated_at"]
    assert [c["id"] for c in book["chapters"]] == [body["chapterId"]]
    assert book["chapters"][0]["mode"] == "novel"
    assert book["chapters"][0]["body"] == "First paragraph.\n\nSecond paragraph."


def test_blank_book_id_means_new_book(client, kv, token) -> None:
    first = _publish(client, token, bookId="").json()
    second = _publish(client, token, bookId="   ").json()
    assert first["bookId"] != second["bookId"]
    assert len(_stored(kv, first["bookId"])["chapters"]) == 1


def test_unknown_book_id_is_created_under_that_id(client, kv, token) -> None:
    response = _publish(client, token, bookId="my-novel")
    assert response.status_code == 201
    assert response.json()["bookId"] == "my-novel"
    book = _stored(kv, "my-novel")
    assert book["id"] == "my-novel"
    assert len(book["chapters"]) == 1


def test_known_book_id_appends_and_keeps_prior_chapters(client, kv, token) -> None:
    first = _publish(client, token, bookId="saga", cover="/r2/covers/a.png").json()
    second = _publish(client, token, bookId="saga", chapterTitle="Departure", bookTitle="The Lighthouse (revised)", cover="").json()
    third = _publish(client, token, bookId="saga", chapterTitle="Return").json()

    book = _stored(kv, "saga")
    assert [c["id"] for c in book["chapters"]] == [first["chapterId"], second["chapterId"], third["chapterId"]]
    assert [c["title"] for c in book["chapters"]] == ["Arrival", "Departure", "Return"]
    assert book["title"] == "The Lighthouse"
    # empty cover leaves the existing one alone
    assert book["cover"] == "/r2/covers/a.png"


def test_description_is_overwritten_whenever_supplied() -> None:
    kv = MemoryKeyValueStore()
    asyncio.run(publish_chapter(kv, PublishRequest(**_payload(bookId="b1"))))

    omitted = _payload(bookId="b1")
    del omitted["bookDesc"]
    asyncio.run(publish_chapter(kv, PublishRequest(**omitted)))
    assert _stored(kv, "b1")["description"] == "A short novel"

    asyncio.run(publish_chapter(kv, PublishRequest(**_payload(bookId="b1", bookDesc=""))))
    assert _stored(kv, "b1")["description"] == ""


def test_republish_updates_timestamp_only() -> None:
    kv = MemoryKeyValueStore()
    t1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    t2 = datetime(2024, 6, 1, tzinfo=timezone.utc)
    asyncio.run(publish_chapter(kv, PublishRequest(**_payload(bookId="b1")), now=t1))
    asyncio.run(publish_chapter(kv, PublishRequest(**_payload(bookId="b1")), now=t2))
    book = _stored(kv, "b1")
    assert book["created_at"] == "2024-01-01T00:00:00.000Z"
    assert book["updated_at"] == "2024-06-01T00:00:00.000Z"
    assert book["chapters"][0]["created_at"] == "2024-01-01T00:00:00.000Z"


def test_mode_defaults_to_scroll(client, kv, token) -> None:
    payload = _payload()
    del payload["mode"]
    body = client.post("/api/books", json=payload, headers={"X-SESSION": token}).json()
    assert _stored(kv, body["bookId"])["chapters"][0]["mode"] == "scroll"


@pytest.mark.parametrize("missing", ["bookTitle", "chapterTitle", "body"])
def test_missing_required_field_is_bad_request(client, kv, token, missing) -> None:
    payload = _payload()
    del payload[missing]
    response = client.post("/api/books", json=payload, headers={"X-SESSION": token})
    assert response.status_code == 400
    assert response.json()["kind"] == "bad-request"
    assert missing in response.json()["fields"]
    assert asyncio.run(kv.list_keys("book:")) == []


@pytest.mark.parametrize("overrides", [{"body": "  \n "}, {"mode": "comic"}, {"unexpected": True}])
def test_invalid_payload_is_bad_request(client, token, overrides) -> None:
    assert _publish(client, token, **overrides).status_code == 400


def test_public_url_uses_configured_base(client, token, monkeypatch) -> None:
    from bookshelf.core.config import settings

    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "https://books.example.com/")
    body = _publish(client, token).json()
    assert body["publicUrl"].startswith("https://books.example.com/reader.html?id=")


@pytest.mark.parametrize("book_id", ["vol/1", "../etc", "a b", "x" * 129])
def test_unsafe_book_id_is_bad_request(client, kv, token, book_id) -> None:
    response = _publish(client, token, bookId=book_id)
    assert response.status_code == 400
    assert response.json()["kind"] == "bad-request"
    assert "bookId" in response.json()["fields"]
    assert asyncio.run(kv.list_keys("book:")) == []


def test_public_url_escapes_query_characters(monkeypatch) -> None:
    from bookshelf.core.config import settings

    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "https://books.example.com")
    url = public_reader_url("war&peace", "c1")
    assert url == "https://books.example.com/reader.html?id=war%26peace&chapter=c1"
    session = ReaderSession.from_url(url)
    assert session.book_id == "war&peace"
    assert session.initial_chapter == "c1"


def test_public_url_opens_the_published_chapter(client, token) -> None:
    body = _publish(client, token, bookId="saga.vol-1").json()
    session = ReaderSession.from_url(body["publicUrl"])
    assert session.book_id == "saga.vol-1"
    assert session.initial_chapter == body["chapterId"]
