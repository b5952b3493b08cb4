"""
Process one XML file against a JSON rule file, without a database.

The rule file holds the tenant, the interface and its rules:

    {
        "tenant_id": "tenant-demo",
        "interface": {"id": "...", "name": "...", "document_type": "ASN", ...},
        "rules": [{"id": "...", "name": "...", "source_path": "...", ...}]
    }

Usage:
    python scripts/process_file.py samples/asn_sample.xml samples/asn_rules.json
    python scripts/process_file.py samples/asn_sample.xml samples/asn_rules.json --json
"""

import argparse
import json
import sys
from pathlib import Path

# Allow imports from the project root when running as a script
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from config import configure_logging
from exceptions import AppError
from main import build_processor
from models.interface import Interface
from models.mapping_rule import MappingRule
from services.mapping_rule_service import InMemoryMappingRuleStore


def load_rule_file(path: Path) -> tuple[str, Interface, list[MappingRule]]:
    """Read tenant, interface and rules; rules inherit tenant and interface ids."""
    config = json.loads(path.read_text(encoding="utf-8"))
    tenant_id = config["tenant_id"]

    interface = Interface.model_validate({**config["interface"], "tenant_id": tenant_id})
    rules = [
        MappingRule.model_validate({
            "tenant_id": tenant_id,
            "interface_id": interface.id,
            **rule,
        })
        for rule in config.get("rules", [])
    ]
    return tenant_id, interface, rules


def print_outcome(outcome) -> None:
    print(f"File:    {outcome.file_name}")
    print(f"Status:  {outcome.status.value}")
    if outcome.error_message:
        print(f"Error:   {outcome.error_message}")

    if outcome.fields:
        print("\nFields:")
        width = max(len(name) for name in outcome.fields)
        for name, value in outcome.fields.items():
            print(f"  {name.ljust(width)}  {value}")

    if outcome.warnings:
        print("\nWarnings:")
        for warning in outcome.warnings:
            print(f"  - {warning}")


def main():
    parser = argparse.ArgumentParser(
        description="Map an XML document to fields using a JSON rule file."
    )
    parser.add_argument("xml_file", help="XML document to process")
    parser.add_argument("rule_file", help="JSON file with tenant_id, interface and rules")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the outcome as JSON",
    )
    args = parser.parse_args()

    configure_logging()

    xml_path = Path(args.xml_file)
    rule_path = Path(args.rule_file)
    for path in (xml_path, rule_path):
        if not path.is_file():
            print(f"ERROR: File not found: {path}")
            sys.exit(1)

    try:
        tenant_id, interface, rules = load_rule_file(rule_path)
        store = InMemoryMappingRuleStore()
        store.save_interface(interface)
        store.replace_rules(tenant_id, interface.id, rules)
    except (ValueError, KeyError, AppError) as e:
        print(f"ERROR: Invalid rule file {rule_path}: {e}")
        sys.exit(1)

    with build_processor(rule_store=store, persist=False) as processor:
        outcome = processor.process(tenant_id, interface, xml_path.read_bytes(), xml_path.name)

    if args.json:
        print(outcome.model_dump_json(indent=2))
    else:
        print_outcome(outcome)

    sys.exit(0 if outcome.status.value == "SUCCESS" else 2)


if __name__ == "__main__":
    main()
