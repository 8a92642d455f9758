import argparse
import asyncio
import json
import sys
from dataclasses import asdict, replace
from pathlib import Path
from typing import Optional, Sequence

from .client import StoreClient
from .config import Settings
from .models import BatchResult, Err, FileEntry, UploadCandidate
from .session import FileSession
from .utils import format_bytes, get_logger


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='fsclient')
    p.add_argument('--base-url', help='file store origin (default: $FILESTORE_BASE_URL)')
    sub = p.add_subparsers(dest='cmd', required=True)

    ls = sub.add_parser('ls')
    ls.add_argument('path', nargs='?', default='')
    ls.add_argument('--json', action='store_true')

    stat = sub.add_parser('stat')
    stat.add_argument('path')
    stat.add_argument('--json', action='store_true')

    upload = sub.add_parser('upload')
    upload.add_argument('files', nargs='+')
    upload.add_argument('--dest', default='')

    upload_dir = sub.add_parser('upload-dir')
    upload_dir.add_argument('directory')
    upload_dir.add_argument('--dest', default='')

    mkdir = sub.add_parser('mkdir')
    mkdir.add_argument('name')
    mkdir.add_argument('--cwd', default='')

    rm = sub.add_parser('rm')
    rm.add_argument('path')

    pull = sub.add_parser('pull')
    pull.add_argument('path')
    pull.add_argument('--out')

    return p


def _entry_line(entry: FileEntry) -> str:
    kind = 'd' if entry.is_dir else '-'
    size = '-' if entry.is_dir else format_bytes(entry.size)
    return f"{kind}\t{size}\t{entry.modified}\t{entry.name}"


def _print_batch(batch: BatchResult) -> int:
    for result in batch.results:
        if isinstance(result, Err):
            print(f"FAILED: {result.error}", file=sys.stderr)
        else:
            print(f"OK: {result.value.path} ({format_bytes(result.value.size)})")
    print(f"{batch.succeeded} uploaded, {batch.failed} failed")
    return 0 if batch.failed == 0 else 1


async def run(args: argparse.Namespace, settings: Settings, client: Optional[StoreClient] = None) -> int:
    client = client or StoreClient.from_settings(settings)
    session = FileSession(client, settings.policy())
    try:
        if args.cmd == 'ls':
            result = await session.navigate_to(args.path)
            if isinstance(result, Err):
                print(result.error, file=sys.stderr)
                return 1
            if args.json:
                print(json.dumps([asdict(e) for e in session.state.entries], indent=2))
            else:
                for entry in session.state.entries:
                    print(_entry_line(entry))
            return 0

        if args.cmd == 'stat':
            result = await session.stat(args.path)
            if isinstance(result, Err):
                print(result.error, file=sys.stderr)
                return 1
            if args.json:
                print(json.dumps(asdict(result.value), indent=2))
            else:
                print(_entry_line(result.value))
            return 0

        if args.cmd == 'upload':
            await session.navigate_to(args.dest)
            candidates = []
            for name in args.files:
                try:
                    candidates.append(UploadCandidate.from_path(name))
                except OSError as exc:
                    print(f"FAILED: {name}: {exc.strerror or exc}", file=sys.stderr)
                    return 1
            return _print_batch(await session.upload_many(candidates, args.dest))

        if args.cmd == 'upload-dir':
            await session.navigate_to(args.dest)
            result = await session.upload_tree(args.directory, args.dest)
            if isinstance(result, Err):
                print(result.error, file=sys.stderr)
                return 1
            return _print_batch(result)

        if args.cmd == 'mkdir':
            await session.navigate_to(args.cwd)
            result = await session.create_directory(args.name)
            if isinstance(result, Err):
                print(result.error, file=sys.stderr)
                return 1
            print(f"OK: {result.value}")
            return 0

        if args.cmd == 'rm':
            result = await session.delete_path(args.path)
            if isinstance(result, Err):
                print(result.error, file=sys.stderr)
                return 1
            print('OK')
            return 0

        if args.cmd == 'pull':
            out = args.out or args.path.split('/')[-1]
            result = await session.download_to(args.path, out)
            if isinstance(result, Err):
                print(result.error, file=sys.stderr)
                return 1
            print(f"OK: saved to {Path(result.value)}")
            return 0

        return 1
    finally:
        await client.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    if args.base_url:
        settings = replace(settings, base_url=args.base_url)
    get_logger('fsclient.cli').debug('Using file store at %s', settings.base_url)
    return asyncio.run(run(args, settings))


if __name__ == '__main__':
    raise SystemExit(main())
