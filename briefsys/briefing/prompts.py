"""Prompt builders for the summarise (map) and merge (reduce) stages."""

from __future__ import annotations

import json
from typing import Any, Sequence

from briefsys.llm.client import ChatMessage

from .models import ArticleInput

SLIDE_TITLES: tuple[str, str, str] = (
    "Key Facts & Summary",
    "Sales Opportunities & Risks",
    "Questions & Next Steps",
)

ARTICLE_SYSTEM_PROMPT = "You are a concise sales research assistant. Respond ONLY with valid JSON."

ARTICLE_REPAIR_SYSTEM_PROMPT = (
    "You must output ONLY JSON with the required keys. Fill missing text tersely."
)

MERGE_SYSTEM_PROMPT = f"""
You are an expert business research and sales analysis assistant. Turn the
per-article notes you are given into a structured, accurate and concise
briefing package for a sales team. Return ONLY valid JSON, no commentary.

Produce:
1. company_overview: who the company is, what it does and how it operates (2-3 sentences).
2. highlights: one entry per article with title, url, one_line_summary,
   sales_bullet and suggested_question, grounded in that article only.
3. slides: exactly three slides, in this order, titled
   "{SLIDE_TITLES[0]}", "{SLIDE_TITLES[1]}", "{SLIDE_TITLES[2]}".
   Each slide has EXACTLY 3 short, punchy bullet points.

Rules:
- one_line_summary is a single factual sentence.
- sales_bullet is 5-12 words and directly useful to a salesperson.
- suggested_question is one specific question a rep can ask the prospect.
- Do not invent facts that the articles do not support.
""".strip()

MERGE_REPAIR_SYSTEM_PROMPT = "You MUST output valid JSON that conforms to the schema. No commentary, no backticks."

_ARTICLE_KEYS_TEMPLATE = """{
  "id": "<string or number>",
  "title": "<string>",
  "url": "<string>",
  "one_line_summary": "<one sentence, crisp>",
  "short_summary": "<2-3 sentences, factual, no fluff>",
  "sales_bullet": "<5-12 words, sales angle>",
  "suggested_question": "<one question a sales rep should ask>"
}"""


def _document_template() -> str:
    template = {
        "company": "<string>",
        "company_overview": "<concise paragraph>",
        "highlights": [
            {"title": "", "url": "", "one_line_summary": "", "sales_bullet": "", "suggested_question": ""}
        ],
        "slides": [
            {"slide_number": index + 1, "slide_title": title, "bullet_points": ["...", "...", "..."]}
            for index, title in enumerate(SLIDE_TITLES)
        ],
    }
    return json.dumps(template, indent=2)


def article_messages(article: ArticleInput, company_name: str) -> list[ChatMessage]:
    user = "\n".join(
        [
            f"Company: {company_name}",
            "",
            "Article:",
            json.dumps(article.to_prompt_dict(), indent=2, ensure_ascii=False),
            "",
            "Task:",
            "Return a JSON object with exactly these keys:",
            _ARTICLE_KEYS_TEMPLATE,
            "No extra commentary. JSON only.",
        ]
    )
    return [
        {"role": "system", "content": ARTICLE_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def article_repair_messages(
    article: ArticleInput,
    company_name: str,
    missing_fields: Sequence[str],
) -> list[ChatMessage]:
    user = "\n".join(
        [
            "Fill the EMPTY fields below using the title/description context. JSON only.",
            "",
            f"Missing keys: {', '.join(missing_fields)}",
            "",
            "Context:",
            f"Company: {company_name}",
            f"Title: {article.title}",
            f"Description: {article.description or ''}",
            f"URL: {article.url}",
        ]
    )
    return [
        {"role": "system", "content": ARTICLE_REPAIR_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def merge_messages(company_name: str, articles: Sequence[dict[str, Any]], top_k: int) -> list[ChatMessage]:
    user = "\n".join(
        [
            f"COMPANY: {company_name}",
            "",
            f"ARTICLES (Top {top_k}):",
            json.dumps(list(articles), indent=2, ensure_ascii=False),
            "",
            "Return a single JSON object with EXACTLY these keys:",
            _document_template(),
            "- Return ONLY JSON (no prose, no backticks).",
            "- Each slide must have EXACTLY 3 short, punchy bullet points.",
        ]
    )
    return [
        {"role": "system", "content": MERGE_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def merge_repair_messages(company_name: str, articles: Sequence[dict[str, Any]]) -> list[ChatMessage]:
    titles = "\n".join(f"  {index}) {title}" for index, title in enumerate(SLIDE_TITLES, start=1))
    user = "\n".join(
        [
            "The previous output failed validation.",
            "",
            "REQUIREMENTS:",
            "- Object with keys: company (string), company_overview (string),",
            "  highlights (array of objects with title, url, one_line_summary, sales_bullet, suggested_question),",
            "  slides (array of exactly 3 slides with slide_number, slide_title, bullet_points[3]).",
            "- Slide titles must be:",
            titles,
            "- Each slide must have EXACTLY 3 bullet points (short, punchy).",
            "- Return ONLY JSON.",
            "",
            f"Rebuild the briefing for {company_name} based on these articles:",
            json.dumps(list(articles), indent=2, ensure_ascii=False),
        ]
    )
    return [
        {"role": "system", "content": MERGE_REPAIR_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


__all__ = [
    "SLIDE_TITLES",
    "article_messages",
    "article_repair_messages",
    "merge_messages",
    "merge_repair_messages",
]
