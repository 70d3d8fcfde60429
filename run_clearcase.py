#!/usr/bin/env python3
"""
run_clearcase.py: organize a notes file or start the local API.
Uses clearcase_config.json. Run from project root.

  python run_clearcase.py notes.txt          # organize + save, print the record
  python run_clearcase.py notes.txt --dry    # organize only, nothing saved
  python run_clearcase.py --api              # start API server
"""

import argparse
import json
import logging
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="ClearCase: organize incident notes")
    parser.add_argument("notes", nargs="?", help="Path to a plain-text notes file")
    parser.add_argument("--dry", action="store_true", help="Parse only; do not save")
    parser.add_argument("--api", action="store_true", help="Start API server")
    parser.add_argument("--perspective", choices=["first_person", "third_person"], default=None,
                        help="Voice of the saved narrative (default: config)")
    args = parser.parse_args()

    logging.basicConfig(
        level   = logging.INFO,
        format  = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt = "%H:%M:%S",
    )

    root = Path(__file__).parent
    sys.path.insert(0, str(root))

    from clearcase.api import ClearCaseAPI, _build_app
    from clearcase.config import ensure_config

    config = ensure_config(root)
    api    = ClearCaseAPI.from_config(config)

    if args.api:
        import uvicorn
        host, port = config["api_host"], config["api_port"]
        print(f"Starting API at http://{host}:{port}")
        uvicorn.run(_build_app(api=api), host=host, port=port, log_level="info")
        return

    if not args.notes:
        parser.error("a notes file is required unless --api is given")
    path = Path(args.notes)
    if not path.exists():
        print(f"Notes file not found: {path}", file=sys.stderr)
        sys.exit(1)
    text = path.read_text(encoding="utf-8")

    if args.dry:
        result = api.parse(text)
    else:
        result = api.create_incident(raw_notes=text, author_perspective=args.perspective)
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
