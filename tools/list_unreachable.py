import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from adventure_book.loader import Book, load_adventure
from adventure_book.models import Page, normalize_page_id


def choice_results(page: Page) -> list:
    names = []
    for choice in page.choices:
        if choice.result:
            names.append(choice.result)
        test = page.tests.get(choice.test) if choice.test else None
        if test is not None:
            names.extend([test.success, test.failure])
    return [page.results[name] for name in names if name in page.results]


def build_graph(book: Book) -> dict:
    graph = {key: [] for key in book.pages}
    for key, page in book.pages.items():
        for result in choice_results(page):
            if result.ends_game:
                continue
            target = normalize_page_id(result.destination)
            if target in book.pages and target not in graph[key]:
                graph[key].append(target)
    return graph


def traverse_from(start_page: str, graph: dict) -> set:
    if start_page not in graph:
        return set()
    visited = set()
    stack = [start_page]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        stack.extend(graph.get(current, []))
    return visited


def find_unreachable(book: Book) -> list:
    graph = build_graph(book)
    reached = traverse_from(normalize_page_id(book.adventure.start), graph)
    return sorted(book.pages[key].id for key in set(graph) - reached)


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: list_unreachable.py <adventure-dir>")
        sys.exit(2)
    book = load_adventure(Path(sys.argv[1]))
    unreachable = find_unreachable(book)

    print(f"Adventure: {book.adventure.title or book.path}")
    print(f"Total pages: {len(book.pages)}")
    print(f"Reachable pages: {len(book.pages) - len(unreachable)}")
    if unreachable:
        print("Unreachable pages:")
        for page_id in unreachable:
            print(f"  - {page_id}")
    else:
        print("All pages reachable from the start page.")


if __name__ == "__main__":
    main()
