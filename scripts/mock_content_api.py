#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import math
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlparse

CATEGORIES = ("Cat", "Inspiration", "General")


def _build_posts(count: int) -> list[dict[str, object]]:
    posts: list[dict[str, object]] = []
    for index in range(1, count + 1):
        category = CATEGORIES[index % len(CATEGORIES)]
        posts.append(
            {
                "id": index,
                "image": f"https://picsum.photos/seed/blog-{index}/800/450",
                "category": category,
                "title": f"{category} notes #{index}",
                "description": f"Sample {category.lower()} article number {index}.",
                "author": "Thompson P.",
                "date": f"2024-{(index % 12) + 1:02d}-{(index % 28) + 1:02d}T09:00:00.000Z",
                "likes": index * 3 % 50,
                "content": f"## {category}\\n\\nMock body for article {index}.",
            }
        )
    return posts


def _page_payload(
    posts: list[dict[str, object]], *, page: int, limit: int, category: str | None, keyword: str | None
) -> dict[str, object]:
    selected = posts
    if category:
        selected = [post for post in selected if str(post["category"]).lower() == category.lower()]
    if keyword:
        needle = keyword.lower()
        selected = [
            post
            for post in selected
            if needle in str(post["title"]).lower() or needle in str(post["description"]).lower()
        ]
    start = (page - 1) * limit
    return {
        "posts": selected[start : start + limit],
        "currentPage": page,
        "totalPages": math.ceil(len(selected) / limit),
        "totalPosts": len(selected),
    }


def _first_int(query: dict[str, list[str]], name: str, default: int) -> int | None:
    raw = query.get(name, [str(default)])[0]
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value >= 1 else None


class MockContentHandler(BaseHTTPRequestHandler):
    server_version = "MockContentAPI/1.0"
    posts: list[dict[str, object]] = []

    def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")

        if path == "/healthz":
            self._write_json(HTTPStatus.OK, {"status": "ok"})
            return

        if path == "/posts":
            query = parse_qs(parsed.query)
            page = _first_int(query, "page", 1)
            limit = _first_int(query, "limit", 6)
            if page is None or limit is None:
                self._write_json(HTTPStatus.BAD_REQUEST, {"detail": "page and limit must be positive integers"})
                return
            payload = _page_payload(
                self.posts,
                page=page,
                limit=limit,
                category=query.get("category", [None])[0],
                keyword=query.get("keyword", [None])[0],
            )
            self._write_json(HTTPStatus.OK, payload)
            return

        if path.startswith("/posts/"):
            post_id = path.removeprefix("/posts/")
            post = next((post for post in self.posts if str(post["id"]) == post_id), None)
            if post is None:
                self._write_json(HTTPStatus.NOT_FOUND, {"detail": "post not found"})
                return
            self._write_json(HTTPStatus.OK, post)
            return

        self._write_json(HTTPStatus.NOT_FOUND, {"detail": "not found"})

    def log_message(self, _: str, *args: object) -> None:
        if args:
            print("mock-content-api:", *args)

    def _write_json(self, status: HTTPStatus, payload: dict[str, object]) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self.send_response(status.value)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock external blog content API (/posts, /posts/{id}).")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=54330)
    parser.add_argument("--posts", type=int, default=30, help="Number of generated posts")
    args = parser.parse_args()

    MockContentHandler.posts = _build_posts(args.posts)
    server = ThreadingHTTPServer((args.host, args.port), MockContentHandler)
    print(f"mock-content-api listening on http://{args.host}:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
