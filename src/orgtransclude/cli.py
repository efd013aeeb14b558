"""CLI for orgtransclude - org-mode transclusion resolver."""

import argparse
import asyncio
import json
import platform
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .core.directive import extract_transclusions
from .core.model import TransclusionError
from .lint import DeadTransclusionsRule
from .log import configure_logging
from .render import directive_to_dict, header_text, result_to_dict
from .runtime import build_runtime


def _open(args: argparse.Namespace, rt: Any) -> Any:
    path = Path(args.file)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return rt.open(path)


def cmd_render(args: argparse.Namespace, rt: Any) -> int:
    """Print a document with every directive expanded."""
    session = _open(args, rt)
    try:
        text = asyncio.run(
            session.render(keep_directives=args.keep_directives, headers=args.headers)
        )
    finally:
        session.close()
    sys.stdout.write(text)
    return 0


def cmd_list(args: argparse.Namespace, rt: Any) -> int:
    """List the directives of a document."""
    session = _open(args, rt)
    try:
        tree = asyncio.run(session.load())
    finally:
        session.close()
    directives = extract_transclusions(tree, rt.link_parser)

    if args.json:
        print(json.dumps([directive_to_dict(d) for d in directives], indent=2))
        return 0

    for i, d in enumerate(directives):
        flags = []
        if d.no_first_heading:
            flags.append(":no-first-heading")
        if d.only_contents:
            flags.append(":only-contents")
        if d.level is not None:
            flags.append(f":level {d.level}")
        if d.exclude_elements:
            flags.append(f":exclude-elements ({' '.join(d.exclude_elements)})")
        print(f"{i}\t{d.link}\t{header_text(d)}\t{' '.join(flags)}".rstrip())
    return 0


def cmd_resolve(args: argparse.Namespace, rt: Any) -> int:
    """Resolve the directives of a document and print a summary of each."""
    session = _open(args, rt)

    async def run() -> list[tuple[Any, Any]]:
        tree = await session.load()
        directives = extract_transclusions(tree, rt.link_parser)
        if args.index is not None:
            if not 0 <= args.index < len(directives):
                raise IndexError(f"No directive #{args.index} ({len(directives)} found)")
            directives = [directives[args.index]]
        return [(d, await session.resolver.resolve(d)) for d in directives]

    try:
        pairs = asyncio.run(run())
    finally:
        session.close()

    failed = any(isinstance(r, TransclusionError) for _, r in pairs)

    if args.json:
        out = [{"directive": directive_to_dict(d), "result": result_to_dict(r)} for d, r in pairs]
        print(json.dumps(out, indent=2))
        return 1 if failed else 0

    for d, r in pairs:
        if isinstance(r, TransclusionError):
            retry = " (retryable)" if r.retryable else ""
            print(f"✗ {d.link}: [{r.kind.value}] {r.message}{retry}")
        else:
            target = f" -> {r.target_section}" if r.target_section else ""
            print(f"✓ {d.link}: {r.source_name} from {r.source_ref.name}{target}")
    return 1 if failed else 0


def cmd_check(args: argparse.Namespace, rt: Any) -> int:
    """Report directives that fail to resolve."""
    session = _open(args, rt)

    async def run() -> list[Any]:
        return await DeadTransclusionsRule().check(await session.load(), session.resolver)

    try:
        findings = asyncio.run(run())
    finally:
        session.close()

    for f in findings:
        print(f"{f.severity}: {f.message}")
    if not findings and not args.quiet:
        print("✓ All transclusions resolve")
    return 1 if any(f.severity == "error" for f in findings) else 0


def cmd_watch(args: argparse.Namespace, rt: Any) -> int:
    """Render a document and re-render it when it or its sources change."""
    from .watch import watch_document

    debounce_ms = args.debounce_ms or rt.config.watch.debounce_ms
    return watch_document(_open(args, rt), debounce_ms=debounce_ms, quiet=args.quiet)


def cmd_serve(args: argparse.Namespace, rt: Any) -> int:
    """Start local JSON API server."""
    import uvicorn

    from .api.app import create_app, generate_token

    token = None
    if args.token == "auto":
        token = generate_token()
        print(f"Generated bearer token: {token}")
        print(f"Use in requests: Authorization: Bearer {token}")
    elif args.token == "none":
        print("Warning: Running without authentication. Only use in trusted environments.")
    else:
        token = args.token

    app = create_app(rt, token=token, enable_cors=args.cors)

    print(f"Starting server on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    return 0


def version_string() -> str:
    return (
        f"orgtransclude {__version__}\n"
        f"python {platform.python_version()}\n"
        f"platform {platform.system().lower()}-{platform.machine()}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orgtx", description="org-mode transclusion resolver")
    parser.add_argument("--version", action="version", version=version_string())
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/orgtx.toml, root/orgtx.toml)",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Directory searched for id: links (overrides config)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimize output")

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    p_render = subparsers.add_parser("render", help="Print a document with transclusions expanded")
    p_render.add_argument("file")
    p_render.add_argument(
        "--keep-directives", action="store_true", help="Keep #+transclude: lines above their content"
    )
    p_render.add_argument("--headers", action="store_true", help="Label each transclusion")

    p_list = subparsers.add_parser("list", help="List the directives of a document")
    p_list.add_argument("file")
    p_list.add_argument("--json", action="store_true", help="Machine-readable output")

    p_resolve = subparsers.add_parser("resolve", help="Resolve directives and summarize results")
    p_resolve.add_argument("file")
    p_resolve.add_argument("--index", type=int, default=None, help="Only the N-th directive")
    p_resolve.add_argument("--json", action="store_true", help="Machine-readable output")

    p_check = subparsers.add_parser("check", help="Report transclusions that fail to resolve")
    p_check.add_argument("file")

    p_watch = subparsers.add_parser("watch", help="Re-render a document when sources change")
    p_watch.add_argument("file")
    p_watch.add_argument("--debounce-ms", type=int, default=None, help="Debounce window")

    p_serve = subparsers.add_parser("serve", help="Start local JSON API server")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8765)
    p_serve.add_argument(
        "--token", default="auto", help='Bearer token, "auto" to generate, "none" to disable'
    )
    p_serve.add_argument("--cors", action="store_true", help="Enable CORS")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    handlers = {
        "render": cmd_render,
        "list": cmd_list,
        "resolve": cmd_resolve,
        "check": cmd_check,
        "watch": cmd_watch,
        "serve": cmd_serve,
    }

    try:
        rt = build_runtime(root=args.root, config_path=args.config)
        level = "DEBUG" if args.verbose else rt.config.logging.level
        configure_logging(level, rt.config.logging.format)
        exit_code = handlers[args.cmd](args, rt)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
