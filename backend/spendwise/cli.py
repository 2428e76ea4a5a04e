"""CLI for classifying descriptions and checking provider setup.

Usage:
    spendwise classify "星巴克咖啡85元"
    spendwise classify "薪水入帳" --categories categories.json --provider openai
    spendwise classify "計程車" --offline
    spendwise providers
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from spendwise.classifier.fallback import classify_with_keywords
from spendwise.config import settings
from spendwise.default_categories import default_taxonomy
from spendwise.logging_config import configure_logging
from spendwise.plugins import registry
from spendwise.schemas.category import CategoryTaxonomy
from spendwise.services.classification_service import build_classification_service


def load_taxonomy(path: str | None) -> CategoryTaxonomy:
    if path is None:
        return default_taxonomy()
    records = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON list of categories")
    return CategoryTaxonomy.from_records(records)


def classify(args: argparse.Namespace) -> None:
    try:
        taxonomy = load_taxonomy(args.categories)
    except (OSError, ValueError) as exc:
        print(f"Error: cannot load categories: {exc}")
        sys.exit(1)

    if args.offline:
        result = classify_with_keywords(args.text, taxonomy)
    else:
        try:
            service = build_classification_service(settings, args.provider)
        except ValueError as exc:
            print(f"Error: {exc}")
            sys.exit(1)
        result = asyncio.run(service.classify(args.text, taxonomy))

    print(json.dumps(result.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))


def list_providers(_args: argparse.Namespace) -> None:
    registry.discover()
    providers = registry.get_all()
    if not providers:
        print("No providers registered.")
        return

    print(f"{'Name':<12} {'Model':<32} {'Configured':<12} {'Default'}")
    print("-" * 66)
    for name in sorted(providers):
        p = registry.create(name, settings)
        print(
            f"{name:<12} {p.model:<32} {'yes' if p.is_configured else 'no':<12} "
            f"{'yes' if name == settings.DEFAULT_AI_PROVIDER else ''}"
        )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="spendwise", description="Spendwise transaction classifier")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # classify
    p_classify = subparsers.add_parser("classify", help="Classify one description")
    p_classify.add_argument("text", help="Transaction description")
    p_classify.add_argument("--categories", default=None, help="JSON file with the category list")
    p_classify.add_argument("--provider", default=None, help="AI provider name")
    p_classify.add_argument(
        "--offline", action="store_true", default=False, help="Use keyword matching only"
    )
    p_classify.set_defaults(func=classify)

    # providers
    p_providers = subparsers.add_parser("providers", help="List AI providers")
    p_providers.set_defaults(func=list_providers)

    args = parser.parse_args(argv)
    configure_logging(args.log_level or settings.LOG_LEVEL)
    args.func(args)


if __name__ == "__main__":
    main()
