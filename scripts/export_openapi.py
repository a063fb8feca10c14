"""Dump the Readiness Harmonizer OpenAPI document to a static JSON file.

Usage:
    python scripts/export_openapi.py                 # writes ./openapi.json
    python scripts/export_openapi.py --out api.json
"""

import argparse
import json
from pathlib import Path

from main import app

DEFAULT_PATH = Path(__file__).resolve().parent.parent / "openapi.json"


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--out", type=Path, default=DEFAULT_PATH, help="Output path")
    args = parser.parse_args()

    document = app.openapi()
    args.out.write_text(json.dumps(document, indent=2, sort_keys=False) + "\n")
    paths = len(document.get("paths", {}))
    print(f"Wrote {args.out} ({paths} paths)")


if __name__ == "__main__":
    main()
