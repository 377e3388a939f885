#!/usr/bin/env python3
"""
Main CLI Entry Point
Lexicon store maintenance, lookups and searches from the command line
"""

import argparse
import json
import logging
import sys

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Lexicon System CLI')
    parser.add_argument('--init-db', action='store_true',
                        help='Create the lexical_records table and indexes')
    parser.add_argument('--lookup', metavar='WORD',
                        help='Look a word up, scraping it when it is not stored yet')
    parser.add_argument('--search', metavar='PREFIX',
                        help='List headwords starting with a prefix')
    parser.add_argument('--idioms', metavar='PHRASE',
                        help='Search idioms containing the words of a phrase')
    parser.add_argument('--page', type=int, default=1, help='Result page (default: 1)')
    parser.add_argument('--per-page', type=int, default=20, help='Results per page (default: 20)')
    parser.add_argument('--max-pages', type=int, default=None,
                        help='Maximum dictionary pages to scrape per word')
    parser.add_argument('--serve', action='store_true', help='Run the HTTP API with uvicorn')
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=8001)
    parser.add_argument('--log-level', default=None, help='Logging level (default from LOG_LEVEL)')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    from lexicon.config import configure_logging
    configure_logging(args.log_level)

    if not any([args.init_db, args.lookup, args.search, args.idioms, args.serve]):
        parser.print_help()
        return 0

    from lexicon.config import validate_config
    from lexicon.errors import LexiconError
    from lexicon.lexical_store import LexicalStore

    try:
        validate_config()
    except ValueError as e:
        print(f"[ERROR] {e}")
        return 2

    store = LexicalStore()

    try:
        if args.init_db:
            if not store.db.ping():
                print(f"[ERROR] Cannot reach {store.db.describe()['connection_string']}")
                return 2
            store.ensure_schema()
            print("[OK] Lexical store schema ready")

        if args.lookup:
            from harvesters.page_sequencer import OxfordPageSequencer
            from lexicon.lookup_service import LookupService

            service = LookupService(store, OxfordPageSequencer(), max_pages=args.max_pages)
            result = service.lookup(args.lookup)
            if not result.found:
                print(f"[INFO] '{args.lookup}' not found")
                return 1
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))

        if args.search or args.idioms:
            from lexicon.query_engine import QueryEngine

            engine = QueryEngine(store)
            if args.search:
                page = engine.search_prefix(args.search, args.page, args.per_page)
            else:
                page = engine.search_idioms(args.idioms, args.page, args.per_page)
            print(json.dumps(page.to_dict(), indent=2, ensure_ascii=False))

        if args.serve:
            import uvicorn
            uvicorn.run("web_apps.lexicon_api:app", host=args.host, port=args.port)

    except LexiconError as e:
        print(f"[ERROR] {e}")
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
