"""
swapsearch 관리 CLI

사용 예:
    swapsearch resolve users
    swapsearch create users --doc-type user --field email:keyword --field age:integer:true --refresh
    swapsearch hotswap users --doc-type user --input users.jsonl --field email --max-write-connections 4
    swapsearch search users --must terms:email=a@b.com --size 10
    swapsearch delete users
    swapsearch refresh users_1700000000000
"""

import argparse
import json
import logging
import sys
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .config import _TRUE_VALUES, ESSettings
from .errors import SearchEngineError
from .es_client import create_search_client
from .models import FieldMapping, Matcher, SearchQuery

logger = logging.getLogger(__name__)


def parse_field(spec: str) -> Tuple[str, Optional[FieldMapping]]:
    """"name[:type[:norms]]" → (name, FieldMapping 또는 None)"""
    parts = spec.split(":")
    name = parts[0]
    if not name:
        raise argparse.ArgumentTypeError(f"Invalid field spec: {spec!r}")
    if len(parts) == 1:
        return name, None
    use_norms = len(parts) > 2 and parts[2].lower() in _TRUE_VALUES
    return name, FieldMapping(parts[1], use_norms)


def parse_matcher(spec: str) -> Tuple[str, Matcher]:
    """"clause:name=v1,v2[^boost]" → (clause, Matcher)"""
    clause, sep, rest = spec.partition(":")
    name, eq, values = rest.partition("=")
    if not sep or not eq or not clause or not name:
        raise argparse.ArgumentTypeError(f"Invalid matcher spec: {spec!r} (expected clause:name=v1,v2[^boost])")

    boost = None
    if "^" in values:
        values, _, boost_text = values.rpartition("^")
        try:
            boost = float(boost_text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"Invalid boost in {spec!r}")

    return clause, Matcher(name=name, values=[v for v in values.split(",") if v], boost=boost)


def group_matchers(pairs: Optional[Sequence[Tuple[str, Matcher]]]) -> Dict[str, List[Matcher]]:
    grouped: Dict[str, List[Matcher]] = {}
    for clause, matcher in pairs or []:
        grouped.setdefault(clause, []).append(matcher)
    return grouped


def read_records(path: str) -> Iterator[dict]:
    """JSON Lines 파일에서 레코드 읽기 ("-"는 stdin)"""
    handle = sys.stdin if path == "-" else open(path, "r", encoding="utf-8")
    try:
        for line in handle:
            line = line.strip()
            if line:
                yield json.loads(line)
    finally:
        if handle is not sys.stdin:
            handle.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="swapsearch", description="Search alias lifecycle manager")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="action", required=True)

    p = sub.add_parser("resolve", help="Show indices bound to an alias")
    p.add_argument("alias")

    p = sub.add_parser("create", help="Create a new index linked to an alias")
    p.add_argument("alias")
    p.add_argument("--doc-type", default="_doc")
    p.add_argument("--field", "-f", action="append", type=parse_field, default=[], dest="fields")
    p.add_argument("--refresh", action="store_true")

    p = sub.add_parser("delete", help="Delete every index bound to an alias")
    p.add_argument("alias")
    p.add_argument("--refresh", action="store_true")

    p = sub.add_parser("refresh", help="Refresh a physical index")
    p.add_argument("index")

    p = sub.add_parser("search", help="Run a structured query against an alias")
    p.add_argument("alias")
    p.add_argument("--should", action="append", type=parse_matcher)
    p.add_argument("--must", action="append", type=parse_matcher)
    p.add_argument("--must-not", action="append", type=parse_matcher)
    p.add_argument("--size", type=int, default=20)
    p.add_argument("--from", type=int, default=0, dest="from_")
    p.add_argument("--sort-by", default="popRank")

    p = sub.add_parser("hotswap", help="Rebuild an alias from JSON Lines records")
    p.add_argument("alias")
    p.add_argument("--doc-type", default="_doc")
    p.add_argument("--input", "-i", required=True, help="JSON Lines file ('-' for stdin)")
    p.add_argument("--field", "-f", action="append", type=parse_field, default=[], dest="fields")
    p.add_argument("--max-write-connections", type=int)

    return parser


def _field_args(fields: Sequence[Tuple[str, Optional[FieldMapping]]]):
    names = [name for name, _ in fields]
    mappings = {name: mapping for name, mapping in fields if mapping is not None}
    return names, mappings


def run(args: argparse.Namespace, settings: ESSettings) -> int:
    alias = getattr(args, "alias", None) or args.index

    with create_search_client(alias, settings) as client:
        if args.action == "resolve":
            indices = sorted(client.resolve_alias())
            if indices:
                for index_name in indices:
                    print(f"  {alias} -> {index_name}")
            else:
                print(f"  {alias}: NOT BOUND")

        elif args.action == "create":
            names, mappings = _field_args(args.fields)
            result = client.create_index(args.doc_type, names, mappings, refresh=args.refresh)
            print(f"Create {alias}: {'OK' if result else 'ALREADY EXISTS'}")

        elif args.action == "delete":
            result = client.delete_index(refresh=args.refresh)
            print(f"Delete {alias}: {'OK' if result else 'FAILED'}")

        elif args.action == "refresh":
            client.indices.refresh_index(args.index)
            print(f"Refresh {args.index}: OK")

        elif args.action == "search":
            query = SearchQuery(
                should=group_matchers(args.should),
                must=group_matchers(args.must),
                must_not=group_matchers(args.must_not),
                size=args.size,
                from_=args.from_,
                sort_by=args.sort_by,
            )
            for hit in client.search(query):
                print(f"  {hit.id}\t{hit.score}")

        elif args.action == "hotswap":
            names, mappings = _field_args(args.fields)
            result = client.hot_swap(
                args.doc_type,
                read_records(args.input),
                names,
                mappings,
                max_write_connections=args.max_write_connections,
            )
            print(f"\n=== Hot swap: {alias} -> {result.new_index} ===")
            print(f"  {result.bulk}")
            print(f"  retired: {', '.join(result.old_indices) or '-'}")

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI 진입점"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    try:
        return run(args, ESSettings.from_env())
    except SearchEngineError as e:
        logger.error(f"{e.__class__.__name__}: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
