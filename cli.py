import argparse
import asyncio
from pathlib import Path

from bs4 import BeautifulSoup
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from hnreader.config import load_settings, save_setting
from hnreader.errors import ServiceError
from hnreader.logging_config import configure_logging
from hnreader.models import Comment, RefreshPolicy, Section, StorySummary
from hnreader.service import ContentService

console = Console()


def render_listing(stories: list[StorySummary], title: str) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Points", justify="right", style="yellow")
    table.add_column("By", style="cyan")
    table.add_column("Age", style="dim")
    table.add_column("Comments", justify="right")
    table.add_column("ID", justify="right", style="dim")
    for s in stories:
        label = escape(s.title)
        if s.domain:
            label += f" [dim]({escape(s.domain)})[/]"
        table.add_row(
            str(s.rank),
            label,
            str(s.score),
            escape(s.author),
            escape(s.age),
            str(s.comment_count),
            str(s.id),
        )
    return table


def comment_text(comment: Comment) -> str:
    if comment.body is None:
        return "[deleted]"
    return BeautifulSoup(comment.body, "html.parser").get_text("\n").strip()


def render_comments(forest: list[Comment], title: str) -> Tree:
    tree = Tree(title)

    def add(parent: Tree, comment: Comment) -> None:
        head = f"[cyan]{escape(comment.author or '?')}[/] [dim]{escape(comment.age)}[/]"
        branch = parent.add(f"{head}\n{escape(comment_text(comment))}")
        for child in comment.children:
            add(branch, child)

    for root in forest:
        add(tree, root)
    return tree


async def main(args):
    settings = load_settings()
    configure_logging(args.log_level or settings.log_level)
    policy = RefreshPolicy.FORCE_BYPASS if args.refresh else RefreshPolicy.USE_CACHE
    cache_file = Path(settings.cache_file)

    async with ContentService.from_settings(settings) as service:
        service.load_cache(cache_file)
        try:
            if args.command == "list":
                section = Section(args.section)
                if args.pages > 1:
                    stories = await service.get_listing_pages(section, args.pages, policy)
                    # Ranks restart at 1 on every collected page
                    collected = max(1, sum(1 for s in stories if s.rank == 1))
                    label = f"pages 1-{collected}"
                else:
                    stories = await service.get_listing(section, args.page, policy)
                    label = f"page {args.page}"
                console.print(render_listing(stories, f"{section.value} ({label})"))
            else:
                if args.latest:
                    forest = await service.get_latest_comments(args.story_id, policy)
                else:
                    forest = await service.get_comments(args.story_id, args.page, policy)
                console.print(render_comments(forest, f"item {args.story_id}"))
        except ServiceError as e:
            console.print(f"[red]Error: {escape(str(e))}[/]")
            return 1
        finally:
            service.save_cache(cache_file)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read Hacker News from the terminal")
    parser.add_argument("--refresh", action="store_true", help="Bypass the cache")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="Show a section listing")
    p_list.add_argument(
        "section", nargs="?", default=Section.TOP.value, choices=[s.value for s in Section]
    )
    p_list.add_argument("--page", type=int, default=1)
    p_list.add_argument("--pages", type=int, default=1, help="Collect pages 1..N")

    p_comments = sub.add_parser("comments", help="Show a story's comment tree")
    p_comments.add_argument("story_id", type=int)
    p_comments.add_argument("--page", type=int, default=1)
    p_comments.add_argument("--latest", action="store_true", help="Newest first")

    p_config = sub.add_parser("config", help="Save a setting to the config file")
    p_config.add_argument("key")
    p_config.add_argument("value")
    return parser


def set_config(args) -> int:
    try:
        save_setting(args.key, args.value)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/]")
        return 1
    console.print(f"[green]Saved {escape(args.key)}[/]")
    return 0


if __name__ == "__main__":
    args = build_parser().parse_args()
    if args.command == "config":
        raise SystemExit(set_config(args))
    raise SystemExit(asyncio.run(main(args)))
