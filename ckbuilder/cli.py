from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from ckbuilder import __version__
from ckbuilder.core.builder.orchestrator import Builder
from ckbuilder.core.config.loader import create_build_config, resolve_build_config_path
from ckbuilder.core.errors import BuildError
from ckbuilder.core.extensions.plugin import preprocess_plugin, verify_plugin
from ckbuilder.core.extensions.skin import build_skin, preprocess_skin, verify_skin
from ckbuilder.core.options import BuildOptions

log = logging.getLogger("ckbuilder.cli")


def _add_build_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--build-config", default=None, help="Build configuration file (default build-config.yaml)")
    p.add_argument("--version", dest="release_version", default=None, help="Version string (default DEV)")
    p.add_argument("--revision", default=None, help="Revision number (default 0)")
    p.add_argument("--overwrite", action="store_true", help="Overwrite the target folder if it exists")
    p.add_argument(
        "-s", "--skip-omitted-in-build-config",
        action="store_true",
        help="Leave out plugins and skins not enabled in the build configuration",
    )
    p.add_argument("--core", action="store_true", help="Only generate ckeditor.js")
    p.add_argument("--commercial", action="store_true", help="Use the commercial license banner")
    p.add_argument("--leave-js-unminified", action="store_true")
    p.add_argument("--leave-css-unminified", action="store_true")
    p.add_argument("--no-zip", action="store_true")
    p.add_argument("--no-tar", action="store_true")


def _options(args: argparse.Namespace) -> BuildOptions:
    return BuildOptions.from_env(
        debug=args.debug_level,
        version=getattr(args, "release_version", None),
        revision=getattr(args, "revision", None),
        overwrite=getattr(args, "overwrite", None),
        build_config=getattr(args, "build_config", None),
        include_all=not getattr(args, "skip_omitted_in_build_config", False),
        core_only=getattr(args, "core", None),
        commercial=getattr(args, "commercial", None),
        leave_js_unminified=getattr(args, "leave_js_unminified", None) or None,
        leave_css_unminified=getattr(args, "leave_css_unminified", None) or None,
        no_zip=getattr(args, "no_zip", None),
        no_tar=getattr(args, "no_tar", None),
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="ckbuilder", description="Editor release builder")
    ap.add_argument("-d", "--debug-level", type=int, default=0, help="0 = info, 1+ = debug output")
    ap.add_argument("-V", "--print-version", action="version", version=f"ckbuilder {__version__}")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build", help="Build a release from a source tree")
    p.add_argument("source")
    p.add_argument("target")
    _add_build_options(p)

    p = sub.add_parser("generate-build-config", help="Write a build configuration listing every plugin and skin")
    p.add_argument("source")
    p.add_argument("--build-config", default=None)

    p = sub.add_parser("preprocess-core", help="Prepare the core for the online builder")
    p.add_argument("source")
    p.add_argument("target")
    _add_build_options(p)

    for name, helptext in (
        ("preprocess-plugin", "Optimize a single plugin"),
        ("preprocess-skin", "Optimize a single skin"),
        ("build-skin", "Optimize a skin and pack its icons"),
    ):
        p = sub.add_parser(name, help=helptext)
        p.add_argument("source", help="Folder or .zip file")
        p.add_argument("target")
        p.add_argument("--overwrite", action="store_true")
        p.add_argument("--leave-js-unminified", action="store_true")
        p.add_argument("--leave-css-unminified", action="store_true")

    for name in ("verify-plugin", "verify-skin"):
        p = sub.add_parser(name, help="Check an extension for errors")
        p.add_argument("source", help="Folder or .zip file")
        p.add_argument("--name", default=None, help="Expected name")

    return ap


def run(args: argparse.Namespace) -> int:
    cmd = args.command

    if cmd == "generate-build-config":
        out = resolve_build_config_path(args.build_config)
        create_build_config(args.source, out)
        print(f"Wrote: {out}")
        return 0

    if cmd in ("verify-plugin", "verify-skin"):
        verify = verify_plugin if cmd == "verify-plugin" else verify_skin
        result = verify(args.source, args.name)
        print(result)
        return 0 if result == "OK" else 1

    options = _options(args)

    if cmd == "build":
        builder = Builder(args.source, args.target, options)
        report = builder.generate_core() if options.core_only else builder.generate_build()
        print(f"Release created in {report.target}")
        return 0

    if cmd == "preprocess-core":
        Builder(args.source, args.target, options).preprocess()
        print("Core preprocessed successfully")
        return 0

    if cmd == "preprocess-plugin":
        preprocess_plugin(args.source, args.target, options)
        print("Plugin preprocessed successfully")
        return 0

    if cmd == "preprocess-skin":
        preprocess_skin(args.source, args.target, options=options)
        print("Skin preprocessed successfully")
        return 0

    if cmd == "build-skin":
        build_skin(args.source, args.target, options)
        print("Skin built successfully")
        return 0

    raise ValueError(f"Unknown command: {cmd}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug_level > 0 else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except BuildError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
