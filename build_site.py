#!/usr/bin/env python3
"""
Static site builder for a folder of tabletop game fragments.

Features:
- Treats every top-level folder holding a core.html as a game
- Reads titles from the first <h1> and subtitles from <div class="subtitle">
- Writes index.html at the root listing each game and its expansions
- Injects Settings/Expansions navigation blocks into each game's core.html
- Injects a "Back to Core Rules" link into every setting and expansion page
- Safe to re-run: injected markup is replaced on every run, never stacked

Usage:
  python build_site.py
  python build_site.py --root ./games --sort name --title "TTRPGs"

Notes:
- Settings are linked from their core.html only; the index lists expansions.
- Existing documents are edited in place; everything outside the injected
  blocks is left byte-for-byte as authored.
"""

from __future__ import annotations

import argparse
import os
import re
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple


# -- configuration --
CORE_FILENAME = "core.html"
INDEX_FILENAME = "index.html"
FRAGMENT_SUFFIX = ".html"
SETTINGS = "Settings"
EXPANSIONS = "Expansions"

# never treated as games, even if they happen to contain a core.html
IGNORE = {
    ".git",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    INDEX_FILENAME,
}

DEFAULT_SITE_TITLE = "TTRPGs"
DEFAULT_SITE_SUBTITLE = "A Collection of Tabletop Games"
DEFAULT_STYLESHEET = "Bound/styles.css"
FONTS_HREF = (
    "https://fonts.googleapis.com/css2?family=Cinzel:wght@400;600;700;900"
    "&family=Crimson+Pro:ital,wght@0,300;0,400;0,500;0,600;1,300;1,400"
    "&family=IM+Fell+English+SC&display=swap"
)


# -- markup contract (shared with documents written by earlier runs) --
TITLE_RE = re.compile(r"<h1>([^<]+)</h1>")
SUBTITLE_RE = re.compile(r'<div class="subtitle">([^<]+)</div>')

NAV_OPEN = '<div class="settings-links">'
ORNAMENT = '<div class="ornament">'
COLOPHON = '<div class="colophon">'
ARTICLE_OPEN = '<article class="manuscript">'
ARTICLE_CLOSE = "</article>"

NAV_BOUNDARY = "|".join(re.escape(m) for m in (NAV_OPEN, ORNAMENT, COLOPHON, ARTICLE_CLOSE))

# A block runs from its open marker to its own </div>, and never past the next
# block, ornament, colophon or </article>. Whitespace after the </div> belongs
# to the block.
NAV_BLOCK_RE = re.compile(
    re.escape(NAV_OPEN)
    + r"(?:(?!" + NAV_BOUNDARY + r")[\s\S])*?"
    + r"(?:</div>\s*|(?=" + NAV_BOUNDARY + r"))"
)

BACK_LINK_HTML = '<a class="back-link" href="../core.html">← Back to Core Rules</a>'
BACK_LINK_RE = re.compile(r'\n?[ \t]*<a class="back-link"[^>]*>[^<]*</a>')


# -- data structures --
class ContentItem:
    """A setting or expansion page belonging to one game."""

    def __init__(self, name: str, file: str, path: str):
        self.name = name
        self.file = file
        # slash-joined "Game/Category/file.html", relative to the site root
        self.path = path

    def __repr__(self) -> str:
        return f"ContentItem({self.path!r})"


class Game:
    """A top-level game folder with its core document and child pages."""

    def __init__(
        self,
        name: str,
        core_path: Path,
        title: str,
        subtitle: str,
        settings: Sequence[ContentItem],
        expansions: Sequence[ContentItem],
    ):
        self.name = name
        self.path = name
        self.core_path = core_path
        self.title = title
        self.subtitle = subtitle
        self.settings: Tuple[ContentItem, ...] = tuple(settings)
        self.expansions: Tuple[ContentItem, ...] = tuple(expansions)

    def __repr__(self) -> str:
        return f"Game({self.name!r})"


# -- progress reporting --
# report(event, **fields) with event one of: stage, game-found, scan-complete,
# index-written, injected, unchanged, skipped
Reporter = Callable[..., None]


def null_reporter(event: str, **fields) -> None:
    pass


def console_reporter(event: str, **fields) -> None:
    """Render pipeline events as plain progress lines."""
    if event == "stage":
        print(f"\n{fields['title']}")
    elif event == "game-found":
        game: Game = fields["game"]
        print(
            f"  - {game.title} ({len(game.settings)} setting(s), "
            f"{len(game.expansions)} expansion(s))"
        )
    elif event == "scan-complete":
        print(f"Found {fields['count']} game(s)")
    elif event == "index-written":
        print(f"  Wrote {fields['path']}")
    elif event == "injected":
        print(f"  Injected {fields['what']} into {fields['path']}")
    elif event == "unchanged":
        print(f"  {fields['path']} already up to date")
    elif event == "skipped":
        print(f"  Skipped {fields['path']}: {fields['reason']}")


# -- helpers: file access --
def read_document(path: Path) -> str:
    # newline="" keeps CRLF documents byte-identical outside injected regions
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_document(path: Path, text: str) -> None:
    """Replace path with text in one step (temp file + rename).

    Symlinked documents are written through to their target, and the file keeps
    its permission bits. On failure the old content stays and no temp file is left.
    """
    path = Path(os.path.realpath(path))
    tmp = path.with_name(path.name + ".tmp")
    f = open(tmp, "w", encoding="utf-8", newline="")
    try:
        with f:
            f.write(text)
        if path.exists():
            shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        if tmp.exists():
            tmp.unlink()
        raise


# -- helpers: reading titles --
def read_title(text: str, fallback: str) -> str:
    match = TITLE_RE.search(text)
    return match.group(1) if match else fallback


def read_subtitle(text: str) -> str:
    match = SUBTITLE_RE.search(text)
    return match.group(1) if match else ""


# -- helpers: scanning --
EntryOrder = Callable[[List[os.DirEntry]], List[os.DirEntry]]


def disk_order(entries: List[os.DirEntry]) -> List[os.DirEntry]:
    """Keep the filesystem listing order; authors order pages by name/creation on disk."""
    return list(entries)


def name_order(entries: List[os.DirEntry]) -> List[os.DirEntry]:
    return sorted(entries, key=lambda e: e.name.lower())


ORDERS = {"disk": disk_order, "name": name_order}


def scan_root(root: Path, order: EntryOrder = disk_order) -> List[str]:
    """List candidate game directories directly under root."""
    with os.scandir(root) as it:
        entries = [e for e in it if e.is_dir() and e.name not in IGNORE]
    return [e.name for e in order(entries)]


def has_core(game_dir: Path) -> bool:
    return (game_dir / CORE_FILENAME).is_file()


def list_items(category_dir: Path, order: EntryOrder = disk_order) -> List[str]:
    """List fragment filenames in a Settings/Expansions folder ([] if it is missing)."""
    if not category_dir.is_dir():
        return []
    with os.scandir(category_dir) as it:
        entries = [e for e in it if e.is_file() and e.name.endswith(FRAGMENT_SUFFIX)]
    return [e.name for e in order(entries)]


# -- content graph --
def read_items(game_dir: Path, category: str, order: EntryOrder = disk_order) -> List[ContentItem]:
    items: List[ContentItem] = []
    for fname in list_items(game_dir / category, order):
        text = read_document(game_dir / category / fname)
        stem = fname[: -len(FRAGMENT_SUFFIX)]
        items.append(
            ContentItem(
                name=read_title(text, stem),
                file=fname,
                path=f"{game_dir.name}/{category}/{fname}",
            )
        )
    return items


def build_games(root: Path, order: EntryOrder = disk_order, report: Reporter = null_reporter) -> List[Game]:
    """Build one Game per directory under root that has a core document.

    Directories without a core.html are skipped silently; the root usually
    holds tooling and asset folders as well as games.
    """
    root = Path(root).resolve()
    games: List[Game] = []
    for name in scan_root(root, order):
        game_dir = root / name
        if not has_core(game_dir):
            continue
        core_path = game_dir / CORE_FILENAME
        core_text = read_document(core_path)
        game = Game(
            name=name,
            core_path=core_path,
            title=read_title(core_text, name),
            subtitle=read_subtitle(core_text),
            settings=read_items(game_dir, SETTINGS, order),
            expansions=read_items(game_dir, EXPANSIONS, order),
        )
        games.append(game)
        report("game-found", game=game)
    report("scan-complete", root=root, count=len(games))
    return games


# -- index page --
def render_game_card(game: Game) -> str:
    lines = [
        '    <div class="game-card">',
        f'      <a href="{game.path}/{CORE_FILENAME}" class="game-title">{game.title}</a>',
        f'      <p class="game-desc">{game.subtitle}</p>',
    ]
    if game.expansions:
        lines.append('      <div class="game-expansions">')
        lines.extend(f'        <a href="{e.path}">{e.name}</a>' for e in game.expansions)
        lines.append("      </div>")
    lines.append("    </div>")
    return "\n".join(lines)


def render_index(
    games: Sequence[Game],
    site_title: str = DEFAULT_SITE_TITLE,
    site_subtitle: str = DEFAULT_SITE_SUBTITLE,
    stylesheet: str = DEFAULT_STYLESHEET,
) -> str:
    """Render the landing page: every game card plus its expansion links.

    Settings are deliberately left out; they are reachable from each core page.
    Titles go in verbatim since they were read out of HTML text already.
    """
    game_cards = "\n".join(render_game_card(game) for game in games)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{site_title}</title>
<link href="{FONTS_HREF}" rel="stylesheet">
<link rel="stylesheet" href="{stylesheet}">
<style>
  .game-list {{
    display: flex;
    flex-direction: column;
    gap: 20px;
    margin: 40px 0;
  }}

  .game-card {{
    display: block;
    padding: 24px;
    border: 1px solid var(--divider);
    background: var(--parchment-dark);
    transition: border-color 0.2s;
  }}

  .game-card:hover {{
    border-color: var(--gold);
  }}

  .game-title {{
    display: block;
    font-family: 'Cinzel', serif;
    font-weight: 700;
    font-size: 1.5em;
    color: var(--blood);
    letter-spacing: 0.08em;
    text-transform: uppercase;
    text-decoration: none;
    margin-bottom: 8px;
  }}

  .game-desc {{
    margin-bottom: 0;
    color: var(--grey-text);
  }}

  .game-expansions {{
    display: flex;
    flex-wrap: wrap;
    gap: 12px;
    margin-top: 12px;
  }}

  .game-expansions a {{
    font-style: italic;
  }}
</style>
</head>
<body>
<article class="manuscript">

  <div class="title-block">
    <h1>{site_title}</h1>
    <div class="subtitle">{site_subtitle}</div>
  </div>

  <div class="game-list">
{game_cards}
  </div>

  <div class="ornament">❧ ❧ ❧</div>

</article>
</body>
</html>
"""


# -- core page navigation --
def render_nav_block(category: str, items: Sequence[ContentItem]) -> str:
    links = "\n    ".join(f'<a href="{category}/{item.file}">{item.name}</a>' for item in items)
    return (
        f"{NAV_OPEN}\n"
        f'    <span class="settings-label">{category}</span>\n'
        f"    {links}\n"
        f"  </div>\n\n  "
    )


def strip_nav_blocks(text: str) -> Tuple[str, int]:
    """Remove every injected navigation block; returns (text, blocks removed)."""
    return NAV_BLOCK_RE.subn("", text)


def insert_before_anchor(text: str, block: str) -> Tuple[str, bool]:
    """Insert block before the ornament, else the colophon, else </article>."""
    for anchor in (ORNAMENT, COLOPHON, ARTICLE_CLOSE):
        if anchor in text:
            return text.replace(anchor, block + anchor, 1), True
    return text, False


def inject_core_links(game: Game, report: Reporter = null_reporter) -> bool:
    """Rewrite game's core.html with fresh Settings/Expansions blocks.

    Returns True if the file was written.
    """
    if not game.settings and not game.expansions:
        return False

    rel = f"{game.path}/{CORE_FILENAME}"
    original = read_document(game.core_path)
    content, _removed = strip_nav_blocks(original)

    blocks = ""
    if game.settings:
        blocks += render_nav_block(SETTINGS, game.settings)
    if game.expansions:
        blocks += render_nav_block(EXPANSIONS, game.expansions)

    content, inserted = insert_before_anchor(content, blocks)
    if not inserted:
        report("skipped", path=rel, reason="no ornament, colophon or </article> to insert before")
        return False
    if content == original:
        report("unchanged", path=rel)
        return False

    write_document(game.core_path, content)
    report("injected", path=rel, what="content links")
    return True


# -- back links --
def item_file(item: ContentItem, game: Game) -> Path:
    # item.path starts with the game folder, which is core_path's parent
    return game.core_path.parent.joinpath(*item.path.split("/")[1:])


def apply_back_link(text: str) -> Tuple[str, bool]:
    """Strip every back link, then add one after the opening <article>.

    Returns (text, inserted). Without an opening <article> the stale links are
    still removed and nothing is inserted.
    """
    text = BACK_LINK_RE.sub("", text)
    if ARTICLE_OPEN not in text:
        return text, False
    return text.replace(ARTICLE_OPEN, f"{ARTICLE_OPEN}\n  {BACK_LINK_HTML}", 1), True


def inject_back_link(item: ContentItem, game: Game, report: Reporter = null_reporter) -> bool:
    path = item_file(item, game)
    original = read_document(path)
    content, inserted = apply_back_link(original)
    if not inserted:
        if content != original:
            write_document(path, content)
        report("skipped", path=item.path, reason=f"no {ARTICLE_OPEN} found")
        return content != original
    if content == original:
        report("unchanged", path=item.path)
        return False
    write_document(path, content)
    report("injected", path=item.path, what="back link")
    return True


def inject_back_links(game: Game, report: Reporter = null_reporter) -> int:
    """Back-link every setting and expansion page of game; returns pages written."""
    written = 0
    for item in game.settings + game.expansions:
        if inject_back_link(item, game, report):
            written += 1
    return written


# -- pipeline --
def rebuild(
    root: Path,
    site_title: str = DEFAULT_SITE_TITLE,
    site_subtitle: str = DEFAULT_SITE_SUBTITLE,
    stylesheet: str = DEFAULT_STYLESHEET,
    order: EntryOrder = disk_order,
    report: Reporter = null_reporter,
) -> List[Game]:
    """Scan root, write index.html, then inject core links and back links.

    The graph is read once up front; every document is then rewritten from a
    single read of itself. OSError from any read or write propagates.
    """
    root = Path(root).resolve()

    report("stage", title=f"Scanning {root}...")
    games = build_games(root, order=order, report=report)

    report("stage", title=f"Generating {INDEX_FILENAME}...")
    index_path = root / INDEX_FILENAME
    write_document(index_path, render_index(games, site_title, site_subtitle, stylesheet))
    report("index-written", path=INDEX_FILENAME)

    report("stage", title="Injecting content links into core files...")
    for game in games:
        inject_core_links(game, report)

    report("stage", title="Injecting back links into settings and expansion files...")
    for game in games:
        inject_back_links(game, report)

    return games


# -- CLI --
def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the game index and cross-link game pages in place.")
    parser.add_argument(
        "--root",
        type=Path,
        default=Path("."),
        help="Folder holding one sub-folder per game (default: current directory)",
    )
    parser.add_argument(
        "--title",
        type=str,
        default=DEFAULT_SITE_TITLE,
        help="Title of the generated index page",
    )
    parser.add_argument(
        "--subtitle",
        type=str,
        default=DEFAULT_SITE_SUBTITLE,
        help="Subtitle of the generated index page",
    )
    parser.add_argument(
        "--stylesheet",
        type=str,
        default=DEFAULT_STYLESHEET,
        help="Stylesheet href written into the index page",
    )
    parser.add_argument(
        "--sort",
        choices=sorted(ORDERS),
        default="disk",
        help="Order games and pages as listed on disk, or by filename",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print progress",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    root: Path = args.root.expanduser().resolve()

    if not root.is_dir():
        raise SystemExit(f"Root directory not found: {root}")

    report = null_reporter if args.quiet else console_reporter
    try:
        rebuild(
            root,
            site_title=args.title,
            site_subtitle=args.subtitle,
            stylesheet=args.stylesheet,
            order=ORDERS[args.sort],
            report=report,
        )
    except OSError as exc:
        raise SystemExit(f"Build failed: {exc}") from exc

    if not args.quiet:
        print(f"\nSite generated at: {root}")


if __name__ == "__main__":
    main()
