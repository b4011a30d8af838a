"""CLI entrypoint for the content generation pipeline."""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timedelta, timezone
import json
import logging

from config import get_settings
from orchestrator import build_content_pipeline
from storage import GenerationHistory, get_quota_ledger
from utils import configure_package_loggers


def _result_json(result) -> str:
    payload = {
        "ok": result.ok,
        "attempts": result.attempts,
    }
    if result.ok:
        payload.update(
            {
                "text": result.text,
                "url": result.article.url if result.article else None,
                "source": result.article.source if result.article else None,
                "image_url": result.article.image_url if result.article else None,
                "hashtags": result.hashtags,
            }
        )
    else:
        payload.update({"reason": result.reason.value if result.reason else None, "message": result.message})
    return json.dumps(payload, ensure_ascii=False, indent=2)


async def _generate(args) -> int:
    pipeline = build_content_pipeline()
    try:
        if args.reference:
            result = await pipeline.generate_by_url_or_channel(args.user_id, args.reference)
        else:
            result = await pipeline.generate_by_keywords(args.user_id, args.keywords)
    finally:
        await pipeline.generator.llm.aclose()
    print(_result_json(result))
    return 0 if result.ok else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="News-to-post content generation CLI")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate one post")
    gen.add_argument("--user-id", required=True)
    target = gen.add_mutually_exclusive_group(required=True)
    target.add_argument("--keywords", help="Free-text topic keywords")
    target.add_argument("--reference", help="Article link, @channel or t.me/channel")

    balance = sub.add_parser("balance", help="Show remaining generations")
    balance.add_argument("--user-id", required=True)

    credit = sub.add_parser("credit", help="Add generations to a user")
    credit.add_argument("--user-id", required=True)
    credit.add_argument("--n", type=int, required=True)

    top = sub.add_parser("top-topics", help="Most requested topics")
    top.add_argument("--days", type=int, default=7)
    top.add_argument("--limit", type=int, default=10)

    args = parser.parse_args()

    level = getattr(logging, str(args.log_level).upper(), logging.INFO)
    configure_package_loggers(level=level, log_file=args.log_file)

    settings = get_settings()

    if args.command == "generate":
        return asyncio.run(_generate(args))

    if args.command == "balance":
        quota = get_quota_ledger().get_quota(args.user_id)
        print(json.dumps(quota.model_dump(), ensure_ascii=False))
        return 0

    if args.command == "credit":
        ledger = get_quota_ledger()
        ledger.credit(args.user_id, args.n)
        print(json.dumps(ledger.get_quota(args.user_id).model_dump(), ensure_ascii=False))
        return 0

    if args.command == "top-topics":
        history = GenerationHistory(settings.quota.history_path)
        since = datetime.now(timezone.utc) - timedelta(days=max(0, args.days))
        topics = history.top_topics(since=since, limit=args.limit)
        print(json.dumps([{"topic": topic, "count": count} for topic, count in topics], ensure_ascii=False))
        return 0

    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
