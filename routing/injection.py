from typing import Optional

from starlette.responses import Response


async def read_body(response: Response) -> bytes:
    """Full body of a plain or streaming response (drains the stream)."""
    iterator = getattr(response, "body_iterator", None)
    if iterator is None:
        return bytes(response.body)

    chunks = []
    async for chunk in iterator:
        chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode(response.charset))
    return b"".join(chunks)


async def inject_markup(response: Response, markup: str, status_code: Optional[int] = None) -> Response:
    """
    Rebuild `response` with `markup` inserted before the closing body tag.

    Headers (cookies included) are kept; Content-Length is recomputed.
    """
    body = await read_body(response)
    data = markup.encode(response.charset or "utf-8")

    index = body.lower().rfind(b"</body>")
    body = body[:index] + data + body[index:] if index >= 0 else body + data

    rebuilt = Response(content=body, status_code=status_code or response.status_code)
    headers = [(k, v) for k, v in response.raw_headers if k.lower() != b"content-length"]
    if not any(k.lower() == b"content-type" for k, _ in headers):
        headers.append((b"content-type", b"text/html; charset=utf-8"))
    headers.append((b"content-length", str(len(body)).encode("latin-1")))
    rebuilt.raw_headers = headers
    rebuilt.background = response.background
    return rebuilt
