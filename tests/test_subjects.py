import httpx
import pytest

from app.services.subjects import HttpSubjectDirectory


def _directory(handler) -> HttpSubjectDirectory:
    return HttpSubjectDirectory(
        "http://directory.test/", timeout=1.0, transport=httpx.MockTransport(handler)
    )


@pytest.mark.asyncio
async def test_existing_subject() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"id": "S1"})

    assert await _directory(handler).exists("S1") is True
    assert seen == ["http://directory.test/subjects/S1"]


@pytest.mark.asyncio
async def test_subject_id_is_path_escaped() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path.decode())
        return httpx.Response(200)

    await _directory(handler).exists("a/b c")

    assert seen == ["/subjects/a%2Fb%20c"]


@pytest.mark.asyncio
async def test_missing_subject() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    assert await _directory(handler).exists("ghost") is False


@pytest.mark.asyncio
async def test_directory_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(httpx.HTTPStatusError):
        await _directory(handler).exists("S1")
