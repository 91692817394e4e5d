# neontype/cli.py
"""
neontype command line.

    neontype serve [--host 0.0.0.0] [--port 3000]
    neontype init-db [--drop]
    neontype daily-text [--date 2026-01-31]     # run once a day (cron)
    neontype play [--mode practice|test|contest] [--minutes 1|2|5] [--api URL]
"""

from __future__ import annotations

import argparse
import curses
import logging
import sys
from datetime import date, datetime

from .reporter import ApiError, ScoreReporter
from .session import (
    DELETE_KEY, CharState, TypingSession, LoadError, format_time, performance_level,
)
from .ticker import SessionDriver

log = logging.getLogger("neontype")

BACKSPACE_KEYS = {"\x7f", "\b", "\x08"}
ESCAPE = "\x1b"
MINUTE_CHOICES = (1, 2, 5)


# ----------------------------
# server-side commands
# ----------------------------
def cmd_serve(args) -> int:
    from . import create_app
    app = create_app()
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def cmd_init_db(args) -> int:
    from . import create_app
    from .store import get_store
    app = create_app({"AUTO_INIT_DB": False})
    with app.app_context():
        store = get_store()
        if args.drop:
            log.info("Dropping old tables...")
            store.drop_all()
        store.create_all()
        store.close()
    log.info("Database is ready.")
    return 0


def cmd_daily_text(args) -> int:
    from . import create_app
    from .api import get_texts
    from .store import get_store

    day = args.date or date.today().isoformat()
    try:
        datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        log.error("--date must be YYYY-MM-DD, got %r", day)
        return 2

    app = create_app()
    with app.app_context():
        store = get_store()
        try:
            if store.daily_text(day):
                log.info("A text for %s already exists. Exiting.", day)
                return 0
            log.info("No text found for %s. Generating a new daily contest text...", day)
            store.put_daily_text(day, get_texts().contest_text())
            log.info("Saved new text for %s.", day)
        finally:
            store.close()
    return 0


# ----------------------------
# terminal player
# ----------------------------
def normalize_key(key) -> str | None:
    """Map a curses get_wch() value onto the engine's key names."""
    if isinstance(key, int):
        # arrows, function keys, resize events
        return DELETE_KEY if key == curses.KEY_BACKSPACE else None
    if key in BACKSPACE_KEYS:
        return DELETE_KEY
    if key in ("\n", "\r", "\t"):
        return None
    return key


def _init_colors() -> None:
    if not curses.has_colors():
        return
    curses.use_default_colors()
    curses.init_pair(1, curses.COLOR_GREEN, -1)
    curses.init_pair(2, curses.COLOR_RED, -1)
    curses.init_pair(3, curses.COLOR_CYAN, -1)


def _attr_for(state: CharState, current: bool) -> int:
    attr = curses.A_NORMAL
    if curses.has_colors():
        if state is CharState.CORRECT:
            attr = curses.color_pair(1)
        elif state is CharState.INCORRECT:
            attr = curses.color_pair(2) | curses.A_UNDERLINE
    else:
        attr = curses.A_DIM if state is CharState.UNTYPED else curses.A_NORMAL
    if current:
        attr |= curses.A_REVERSE
    return attr


def draw(screen, session: TypingSession) -> None:
    screen.erase()
    h, w = screen.getmaxyx()
    width = max(10, min(w - 2, 72))
    stats = session.live_stats()

    header = (f" {format_time(session.remaining_seconds)}   "
              f"WPM {stats.wpm:>3}   ACC {stats.accuracy:>3}%   ESC quits")
    screen.addnstr(0, 0, header, w - 1, curses.color_pair(3) if curses.has_colors() else curses.A_BOLD)

    text = session.reference_text
    marks = session.char_states
    current = session.current_index
    body_rows = max(1, h - 3)
    cur_row = (current if current is not None else session.cursor) // width
    first_row = max(0, cur_row - body_rows // 2)

    for i, ch in enumerate(text):
        row = i // width - first_row
        if row < 0:
            continue
        if row >= body_rows:
            break
        shown = "_" if ch == " " and marks[i] is CharState.INCORRECT else ch
        screen.addstr(2 + row, 1 + i % width, shown, _attr_for(marks[i], i == current))
    screen.refresh()


def _play_loop(screen, driver: SessionDriver) -> None:
    curses.curs_set(0)
    _init_colors()
    screen.timeout(100)  # redraw the countdown even without input
    session = driver.session
    while not session.finished:
        draw(screen, session)
        try:
            key = screen.get_wch()
        except curses.error:
            continue
        if key == ESCAPE:
            driver.close()
            break
        driver.keystroke(normalize_key(key))


def _print_leaderboard(board: dict) -> None:
    print("\nToday's leaderboard")
    for i, row in enumerate(board.get("top10") or [], start=1):
        marker = "  <- you" if row.get("isYou") else ""
        print(f"{i:>3}. {row.get('name', '?'):<20} {row.get('wpm'):>4} WPM  {row.get('accuracy')}%{marker}")
    mine = board.get("userRank")
    if mine:
        if len(board.get("top10") or []) >= 10:
            print("  ...")
        print(f"{mine['rank']:>3}. {mine.get('name', '?'):<20} {mine.get('wpm'):>4} WPM  {mine.get('accuracy')}%  <- you")


def cmd_play(args) -> int:
    minutes = 1 if args.mode == "contest" else args.minutes
    reporter = ScoreReporter(args.api, name=args.name or "", email=args.email or "",
                             mode=args.mode, token=args.token)

    try:
        if args.mode == "contest" and reporter.has_played():
            print("You have already completed today's contest. Check back tomorrow!")
            return 1
        text = reporter.fetch_text(minutes)
    except ApiError as e:
        print(f"Could not start the test: {e}", file=sys.stderr)
        return 1

    results = []
    session = TypingSession(minutes * 60, on_finish=results.append)
    try:
        session.load(text)
    except LoadError:
        print("Failed to load text. Please try again.", file=sys.stderr)
        return 1

    with SessionDriver(session) as driver:
        curses.wrapper(_play_loop, driver)

    if not results:
        print("No result recorded.")
        return 0

    result = results[0]
    reporter.report(result)

    print(f"WPM:      {result.net_wpm}")
    print(f"Accuracy: {result.accuracy}%")
    print(f"Errors:   {result.error_count}")
    print(f"Level:    {performance_level(result.net_wpm)} Typist")

    if args.mode == "contest":
        try:
            _print_leaderboard(reporter.leaderboard())
        except ApiError as e:
            print(f"Could not load leaderboard: {e}", file=sys.stderr)
    return 0


# ----------------------------
# entry point
# ----------------------------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="neontype", description="Neon Type-Racer typing test")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("serve", help="run the API server")
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=3000)
    s.add_argument("--debug", action="store_true")
    s.set_defaults(func=cmd_serve)

    s = sub.add_parser("init-db", help="create database tables")
    s.add_argument("--drop", action="store_true", help="drop existing tables first")
    s.set_defaults(func=cmd_init_db)

    s = sub.add_parser("daily-text", help="generate and store the daily contest text")
    s.add_argument("--date", help="YYYY-MM-DD (default: today)")
    s.set_defaults(func=cmd_daily_text)

    s = sub.add_parser("play", help="take a typing test in the terminal")
    s.add_argument("--mode", choices=("practice", "test", "contest"), default="practice")
    s.add_argument("--minutes", type=int, choices=MINUTE_CHOICES, default=1)
    s.add_argument("--api", default="http://localhost:3000")
    s.add_argument("--name")
    s.add_argument("--email")
    s.add_argument("--token", help="bearer token from Google sign-in")
    s.set_defaults(func=cmd_play)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
