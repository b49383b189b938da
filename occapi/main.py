# occapi/main.py
import argparse
import json
import logging
import sys

from . import importer, settings
from .api_client import JsonDataFetcher
from .loader import OccapiDataLoader
from .providers import get_providers
from .schema import ensure_schema
from .store import SharedTempStore
from .tempstore import params_from_key, provider_prefix


def cmd_providers(args, loader):
    providers = get_providers(enabled_only=args.enabled)
    if not providers:
        print("No providers configured.")
        return 0
    for provider in providers.values():
        status = "enabled" if provider["status"] else "disabled"
        print(f"{provider['id']}: {provider['label']} ({provider['hei_id']}) {provider['base_url']} [{status}]")
    return 0

def cmd_load(args, loader):
    if args.resource_type == "hei":
        data = loader.load_institution(args.provider) or {}
    elif args.filter:
        filter_type, _, filter_id = args.filter.partition(":")
        data = loader.load_filtered_collection(args.provider, filter_type, filter_id, args.resource_type)
    elif args.resource_id:
        data = loader.load_resource(args.provider, args.resource_type, args.resource_id)
    else:
        data = loader.load_collection(args.provider, args.resource_type)

    if not data:
        print("No data loaded.", file=sys.stderr)
        return 1
    print(json.dumps(data, indent=2, ensure_ascii=False))
    return 0

def _print_report(report):
    for category, text in report["messages"]:
        print(f"[{category}] {text}")
    return 1 if report["failed"] or not (report["created"] or report["existing"]) else 0

def cmd_import_institution(args, loader):
    return _print_report(importer.import_institution(args.provider, loader))

def cmd_import_ounits(args, loader):
    return _print_report(importer.import_ounits(args.provider, loader))

def cmd_import_programme(args, loader):
    return _print_report(importer.import_programme(args.key, loader))

def cmd_import_courses(args, loader):
    return _print_report(importer.import_courses(args.key, loader))

def cmd_refresh(args, loader):
    if args.provider:
        cleared = SharedTempStore().delete_prefix(provider_prefix(args.provider))
        print(f"Cleared {cleared} cached items for {args.provider}")
    else:
        stamp = loader.fetcher.update_index()
        print(f"Cached data before {stamp} is now stale")
    return 0

def cmd_key(args, loader):
    print(json.dumps(params_from_key(args.key), indent=2))
    return 0

def build_parser():
    parser = argparse.ArgumentParser(prog="occapi", description="OCCAPI client")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("providers", help="list OCCAPI providers")
    p.add_argument("--enabled", action="store_true", help="only enabled providers")
    p.set_defaults(func=cmd_providers)

    p = sub.add_parser("load", help="load a resource or collection")
    p.add_argument("provider")
    p.add_argument("resource_type", choices=["hei", "ounit", "programme", "course"])
    p.add_argument("resource_id", nargs="?")
    p.add_argument("--filter", help="filter as type:id, e.g. programme:123")
    p.set_defaults(func=cmd_load)

    p = sub.add_parser("import-institution", help="create the institution of a provider")
    p.add_argument("provider")
    p.set_defaults(func=cmd_import_institution)

    p = sub.add_parser("import-ounits", help="create the organizational units of a provider")
    p.add_argument("provider")
    p.set_defaults(func=cmd_import_ounits)

    p = sub.add_parser("import-programme", help="import a programme by cache key")
    p.add_argument("key")
    p.set_defaults(func=cmd_import_programme)

    p = sub.add_parser("import-courses", help="import a course collection by cache key")
    p.add_argument("key")
    p.set_defaults(func=cmd_import_courses)

    p = sub.add_parser("refresh", help="mark cached data stale")
    p.add_argument("--provider", help="clear the cached data of one provider instead")
    p.set_defaults(func=cmd_refresh)

    p = sub.add_parser("key", help="decode a cache key")
    p.add_argument("key")
    p.set_defaults(func=cmd_key)

    return parser

def main(argv=None):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format=settings.LOG_FORMAT,
        datefmt=settings.LOG_DATEFMT,
    )
    args = build_parser().parse_args(argv)
    ensure_schema()
    loader = OccapiDataLoader(JsonDataFetcher())
    return args.func(args, loader)

if __name__ == "__main__":
    sys.exit(main())
