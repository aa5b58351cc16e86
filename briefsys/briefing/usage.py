"""Token-usage telemetry emitted alongside every attempted LLM call."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from loguru import logger

from briefsys.llm.client import ChatCompletion

from .models import UsageRecord

UsageSink = Callable[[UsageRecord], None]


def usage_record(
    source: str,
    completion: ChatCompletion | None,
    *,
    metadata: Mapping[str, Any] | None = None,
) -> UsageRecord:
    """Build a record for one call; ``completion`` is ``None`` when the call raised."""

    usage = completion.usage if completion is not None else None
    return UsageRecord(
        source=source,
        model=completion.model if completion is not None else None,
        prompt_tokens=usage.prompt_tokens if usage else 0,
        completion_tokens=usage.completion_tokens if usage else 0,
        total_tokens=usage.total_tokens if usage else 0,
        metadata=dict(metadata or {}),
    )


def emit_usage(sink: UsageSink | None, record: UsageRecord) -> None:
    """Deliver ``record`` to ``sink``; telemetry failures never reach the caller."""

    if sink is None:
        return
    try:
        sink(record)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Usage telemetry for {} dropped: {}", record.source, exc)


def summarize_usage(records: Iterable[UsageRecord]) -> dict[str, Any]:
    """Aggregate records into the usage block embedded in a stored report."""

    map_stage: list[dict[str, Any]] = []
    merge_tokens = 0
    merge_calls = 0
    for record in records:
        if record.stage == "map":
            map_stage.append(
                {
                    "source": record.source,
                    "tokens": record.total_tokens,
                    "article_id": record.metadata.get("article_id"),
                    "title": record.metadata.get("title"),
                }
            )
        elif record.stage == "merge":
            merge_tokens += record.total_tokens
            merge_calls += 1

    map_tokens = sum(item["tokens"] for item in map_stage)
    return {
        "map_stage": map_stage,
        "merge_stage": {"calls": merge_calls, "tokens": merge_tokens},
        "total_tokens": map_tokens + merge_tokens,
    }


__all__ = ["UsageSink", "emit_usage", "summarize_usage", "usage_record"]
