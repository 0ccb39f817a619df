"""HTTP requests issued from inside a page.

Requests go through the page's own `fetch`, so they carry the page's cookies
and origin. Each request is tagged with a per-page id header, which is used
to pick its response out of the page's network traffic.
"""

from enum import StrEnum
from typing import Any

from playwright.async_api import Page, Response
from pydantic import BaseModel

FETCH_ID_HEADER = "x-e2e-fetch-id"

_NEXT_FETCH_ID_JS = "() => window.e2eFetchId = (window.e2eFetchId ?? 0) + 1"

_FETCH_JS = """([method, url, body, fetchId]) => {
    fetch(url, {
        method,
        body: body !== null ? JSON.stringify(body) : null,
        headers: new Headers({
            "x-e2e-fetch-id": String(fetchId),
            "Content-Type": "application/json",
        }),
    });
}"""


class HttpMethod(StrEnum):
    """HTTP methods supported by fetch."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


async def fetch(
    page: Page, method: HttpMethod, url: str, body: Any = None
) -> Response:
    """Issue a request from the page and return its response.

    Args:
        page: Page whose browsing context sends the request
        method: HTTP method
        url: Target URL, relative URLs resolve against the current page
        body: JSON-serializable body, or a pydantic model

    Returns:
        The response matched by its fetch id

    """
    fetch_id = await page.evaluate(_NEXT_FETCH_ID_JS)
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json")

    def is_tagged(response: Response) -> bool:
        return response.request.headers.get(FETCH_ID_HEADER) == str(fetch_id)

    # Listen before sending so the response cannot be missed
    async with page.expect_response(is_tagged) as response_info:
        await page.evaluate(_FETCH_JS, [str(method), url, body, fetch_id])
    return await response_info.value


async def get(page: Page, url: str) -> Response:
    """Issue a GET request from the page."""
    return await fetch(page, HttpMethod.GET, url)


async def post(page: Page, url: str, body: Any) -> Response:
    """Issue a POST request from the page."""
    return await fetch(page, HttpMethod.POST, url, body)


async def put(page: Page, url: str, body: Any) -> Response:
    """Issue a PUT request from the page."""
    return await fetch(page, HttpMethod.PUT, url, body)


async def patch(page: Page, url: str, body: Any) -> Response:
    """Issue a PATCH request from the page."""
    return await fetch(page, HttpMethod.PATCH, url, body)


async def delete(page: Page, url: str) -> Response:
    """Issue a DELETE request from the page."""
    return await fetch(page, HttpMethod.DELETE, url)
