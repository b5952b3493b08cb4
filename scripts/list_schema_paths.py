"""
List the element paths of an XSD, for writing mapping rules.

Usage:
    python scripts/list_schema_paths.py asn.xsd
    python scripts/list_schema_paths.py asn.xsd --tenant tenant-demo --xpath
"""

import argparse
import sys
from pathlib import Path

# Allow imports from the project root when running as a script
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from config import configure_logging
from exceptions import AppError
from services.schema_service import SchemaIntrospector, get_schema_introspector


def main():
    parser = argparse.ArgumentParser(
        description="List element and attribute paths declared by an XSD."
    )
    parser.add_argument("schema", help="Schema file (relative to the schema directory)")
    parser.add_argument("--tenant", default=None, help="Use this tenant's schema override")
    parser.add_argument(
        "--schema-dir",
        default=None,
        help="Schema directory (default: SCHEMA_DIR setting)",
    )
    parser.add_argument(
        "--xpath",
        action="store_true",
        help="Print XPath source paths instead of the dotted structure",
    )
    parser.add_argument(
        "--no-attributes",
        action="store_true",
        help="Leave attribute declarations out",
    )
    args = parser.parse_args()

    configure_logging()
    if args.schema_dir:
        introspector = SchemaIntrospector(schema_dir=args.schema_dir)
    else:
        introspector = get_schema_introspector()

    try:
        summary = introspector.describe(args.schema, args.tenant)
        elements = introspector.structure(args.schema, args.tenant)
    except AppError as e:
        print(f"ERROR: {e.message}")
        sys.exit(1)

    print(f"Root element: {summary.root_element}")
    print(f"Namespace:    {summary.namespace or '(none)'}\n")

    for element in elements:
        if args.no_attributes and element.is_attribute:
            continue
        if args.xpath:
            print(element.xpath)
        else:
            occurs = f"[{element.min_occurs or '1'}..{element.max_occurs or '1'}]"
            print(f"  {element.path:<50} {element.type:<20} {occurs}")


if __name__ == "__main__":
    main()
