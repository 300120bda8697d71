from __future__ import annotations

from backend.app.services.reference_assembler import Reference

STARTER_REFERENCES: tuple[Reference, ...] = (
    Reference(
        id="1",
        title="UI Design Fundamentals",
        description="Learn the basics of UI design with practical examples and tips",
        url="https://www.youtube.com/watch?v=tRpoI6vkqLs",
        tags=("UI Design", "Fundamentals"),
        thumbnail="https://i.ytimg.com/vi/tRpoI6vkqLs/maxresdefault.jpg",
    ),
    Reference(
        id="2",
        title="React Hooks Tutorial",
        description="Complete guide to React Hooks with real-world examples",
        url="https://www.youtube.com/watch?v=TNhaISOUy6Q",
        tags=("React", "Hooks", "Tutorial"),
        thumbnail="https://i.ytimg.com/vi/TNhaISOUy6Q/maxresdefault.jpg",
    ),
    Reference(
        id="3",
        title="CSS Grid Layout Crash Course",
        description="Master CSS Grid layout in 30 minutes with practical demos",
        url="https://www.youtube.com/watch?v=jV8B24rSN5o",
        tags=("CSS", "Grid", "Layout"),
        thumbnail="https://i.ytimg.com/vi/jV8B24rSN5o/maxresdefault.jpg",
    ),
    Reference(
        id="4",
        title="TypeScript for Beginners",
        description="Introduction to TypeScript for JavaScript developers",
        url="https://www.youtube.com/watch?v=BwuLxPH8IDs",
        tags=("TypeScript", "JavaScript", "Tutorial"),
        thumbnail="https://i.ytimg.com/vi/BwuLxPH8IDs/maxresdefault.jpg",
    ),
    Reference(
        id="5",
        title="Next.js Full Course",
        description="Build modern web applications with Next.js framework",
        url="https://www.youtube.com/watch?v=mTz0GXj8NN0",
        tags=("Next.js", "React", "Framework"),
        thumbnail="https://i.ytimg.com/vi/mTz0GXj8NN0/maxresdefault.jpg",
    ),
    Reference(
        id="6",
        title="Tailwind CSS Tutorial",
        description="Learn how to build beautiful websites with Tailwind CSS",
        url="https://www.youtube.com/watch?v=UBOj6rqRUME",
        tags=("Tailwind", "CSS", "Tutorial"),
        thumbnail="https://i.ytimg.com/vi/UBOj6rqRUME/maxresdefault.jpg",
    ),
)


class InMemoryReferenceRepository:
    """Process-local list of captured references; nothing is written to disk."""

    def __init__(self, initial: tuple[Reference, ...] = ()) -> None:
        self._references: list[Reference] = list(initial)

    def add(self, reference: Reference) -> Reference:
        self._references.append(reference)
        return reference

    def list_all(self) -> list[Reference]:
        return list(self._references)

    def search(self, query: str | None) -> list[Reference]:
        needle = (query or "").strip().lower()
        if not needle:
            return self.list_all()
        return [reference for reference in self._references if _matches(reference, needle)]


def _matches(reference: Reference, needle: str) -> bool:
    if needle in reference.title.lower() or needle in reference.description.lower():
        return True
    return any(needle in tag.lower() for tag in reference.tags)
