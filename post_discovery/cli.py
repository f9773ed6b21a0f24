from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Callable, Sequence

from .config import config_sha256, load_config
from .controls import DiscoveryController, enhance
from .errors import ConfigError, PostStoreError, ViewError
from .event_log import EventLog
from .filter_state import SortKey
from .store import parse_document


def _add_page_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--page",
        required=True,
        help="Path to a rendered post listing page (HTML).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (defaults apply when omitted).",
    )
    parser.add_argument(
        "--category",
        action="append",
        default=[],
        help="Toggle a category; repeat for several.",
    )
    parser.add_argument(
        "--tag",
        action="append",
        default=[],
        help="Toggle a tag; repeat for several.",
    )
    parser.add_argument("--search", default=None, help="Free-text search query.")
    parser.add_argument(
        "--sort",
        default=None,
        choices=[key.value for key in SortKey],
        help="Sort order for the visible posts.",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear every filter after applying the selections above.",
    )
    parser.add_argument(
        "--log",
        default=None,
        help="Write a JSONL event log to this path.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="post_discovery")

    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser(
        "apply",
        help="Filter and sort a rendered listing page, optionally writing the result.",
    )
    _add_page_arguments(apply)
    apply.add_argument(
        "--out",
        default=None,
        help="Write the reconciled page HTML to this path.",
    )
    apply.set_defaults(_handler=_cmd_apply)

    query = subparsers.add_parser(
        "query",
        help="Print the visible posts for a selection as JSON.",
    )
    _add_page_arguments(query)
    query.set_defaults(_handler=_cmd_query)

    check = subparsers.add_parser(
        "check-config",
        help="Validate a config file and print its hash.",
    )
    check.add_argument(
        "--config",
        required=True,
        help="Path to YAML config file.",
    )
    check.set_defaults(_handler=_cmd_check_config)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _read_page(path: str) -> str:
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8")
    except OSError as e:
        raise PostStoreError(f"Failed to read page: {p}") from e


def _run_selection(args: argparse.Namespace, log: EventLog | None) -> DiscoveryController:
    cfg = load_config(args.config)
    document = parse_document(_read_page(args.page))

    if log is not None:
        log.set_page(str(args.page))
        log.info("config_loaded", config_sha256=config_sha256(cfg))

    controller = enhance(document, cfg, log=log, strict=True)
    if controller is None:
        raise ViewError(f"Failed to enhance page: {args.page}")

    for name in args.category:
        controller.toggle_category(name)
    for name in args.tag:
        controller.toggle_tag(name)
    if args.search is not None:
        controller.set_search_query(args.search)
    if args.sort is not None:
        controller.set_sort_key(args.sort)
    if args.clear:
        controller.clear_all()

    return controller


def _with_optional_log(args: argparse.Namespace, fn: Callable[[EventLog | None], int]) -> int:
    if not args.log:
        return fn(None)

    with EventLog.open(args.log, overwrite=True) as log:
        log.info("command_started", command=args.command, page=str(args.page))
        try:
            return fn(log)
        except Exception as e:
            log.exception("command_failed", exc=e)
            raise


def _cmd_apply(args: argparse.Namespace) -> int:
    def _run(log: EventLog | None) -> int:
        controller = _run_selection(args, log)
        view = controller.view

        print(f"total={view.total_count}")
        print(f"filtered={view.filtered_count}")
        print(f"active_filters={view.active_filter_count}")
        print(f"counter={view.counter_text()}")

        if args.out:
            out = Path(args.out)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(str(controller.document), encoding="utf-8")
            print(f"out={out}")

        return 0

    return _with_optional_log(args, _run)


def _cmd_query(args: argparse.Namespace) -> int:
    def _run(log: EventLog | None) -> int:
        controller = _run_selection(args, log)
        view = controller.view
        state = controller.state

        payload = {
            "total": view.total_count,
            "filtered": view.filtered_count,
            "active_filters": view.active_filter_count,
            "counter": view.counter_text(),
            "state": {
                "categories": sorted(state.selected_categories),
                "tags": sorted(state.selected_tags),
                "search_query": state.search_query,
                "sort_key": state.sort_key.value,
            },
            "posts": [
                {
                    "title": p.title,
                    "url": p.url,
                    "date": p.date.isoformat(),
                    "categories": list(p.categories),
                    "tags": list(p.tags),
                }
                for p in view.posts
            ],
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    return _with_optional_log(args, _run)


def _cmd_check_config(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    print(f"source={cfg.source.kind}")
    print(f"strategy={cfg.view.strategy}")
    print(f"default_sort={cfg.defaults.sort_key.value}")
    print(f"config_sha256={config_sha256(cfg)}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (PostStoreError, ViewError) as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
