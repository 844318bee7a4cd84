"""
CLI wrapper: Write the OpenAPI document of the compiler service.

Usage:
    uv run openapi [output-path]   # default: docs/openapi.json
"""

from __future__ import annotations

import json
import sys
from pathlib import Path


def main() -> None:
    from apim_policy.main import create_app

    output_file = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("docs") / "openapi.json"
    output_file.parent.mkdir(parents=True, exist_ok=True)

    openapi_schema = create_app().openapi()
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(openapi_schema, f, indent=2)
        f.write("\n")

    print(f"[OK] OpenAPI schema generated: {output_file}")
    print(f"   Title: {openapi_schema['info']['title']}")
    print(f"   Version: {openapi_schema['info']['version']}")
    print(f"   Endpoints: {len(openapi_schema['paths'])} paths")

    for path, methods in openapi_schema["paths"].items():
        for method, details in methods.items():
            tags = details.get("tags", [""])
            summary = details.get("summary", "No summary")
            print(f"   {method.upper():6} {path:40} [{tags[0]}] {summary}")


if __name__ == "__main__":
    main()
