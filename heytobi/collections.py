from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .content import Post


class PostCollection(Sequence[Post]):
    """Lightweight helper for working with lists of Posts in templates and code."""

    def __init__(self, posts: Iterable[Post]):
        self._posts = list(posts)
        # Stable sort cache for .sorted()/latest() to avoid recomputing repeatedly
        self._sorted_cache: PostCollection | None = None

    def __iter__(self) -> Iterator[Post]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        return self._posts[item]

    def from_source(self, name: str) -> PostCollection:
        return PostCollection(p for p in self._posts if p.source == name)

    def drafts(self) -> PostCollection:
        return PostCollection(p for p in self._posts if p.draft)

    def published(self) -> PostCollection:
        return PostCollection(p for p in self._posts if not p.draft)

    def sorted(self, reverse: bool = True) -> PostCollection:
        """Sort posts by date, then by slug.

        Args:
            reverse: If True (default), newest first. If False, oldest first.

        Returns:
            A new PostCollection with sorted posts.
        """
        if self._sorted_cache is None or reverse is False:
            sorted_posts = sorted(
                self._posts, key=lambda p: (p.date, p.slug), reverse=reverse
            )
            if reverse:
                self._sorted_cache = PostCollection(sorted_posts)
            return PostCollection(sorted_posts)
        return self._sorted_cache

    def latest(self, count: int = 5) -> PostCollection:
        return PostCollection(self.sorted()[:count])

    def neighbours(self, post: Post) -> tuple[Post | None, Post | None]:
        """Return ``(previous, next)`` around ``post`` in date order.

        ``previous`` is the next older post, ``next`` the next newer one.
        """
        ordered = list(self.sorted())
        try:
            index = next(i for i, p in enumerate(ordered) if p is post)
        except StopIteration:
            return None, None
        previous = ordered[index + 1] if index + 1 < len(ordered) else None
        newer = ordered[index - 1] if index > 0 else None
        return previous, newer

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostCollection({len(self._posts)} posts)"
