"""JSON schemas for structured completions (``response_format`` payloads)."""

from __future__ import annotations

from typing import Any


EXTRACTION_SCHEMA: dict[str, Any] = {
    "name": "news_articles",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "articles": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "description": "The article title"},
                        "url": {"type": "string", "description": "Full URL of the article"},
                        "content": {
                            "type": "string",
                            "description": "Brief excerpt or summary of the article content",
                        },
                        "category": {
                            "type": "string",
                            "description": "Category or topic of the article",
                        },
                    },
                    "required": ["title", "url", "content", "category"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["articles"],
        "additionalProperties": False,
    },
}


SUMMARY_SCHEMA: dict[str, Any] = {
    "name": "news_digest",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "introText": {
                "type": "string",
                "description": "One or two sentences introducing today's digest",
            },
            "categories": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "category": {
                            "type": "string",
                            "description": "Name of the news category or theme",
                        },
                        "commentary": {
                            "type": "string",
                            "description": "Brief factual commentary about this group of articles",
                        },
                        "articles": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "title": {"type": "string", "description": "Original article title"},
                                    "url": {"type": "string", "description": "Article URL"},
                                    "source": {"type": "string", "description": "Source name"},
                                    "summary": {
                                        "type": "string",
                                        "description": "1-2 sentence summary of the article",
                                    },
                                },
                                "required": ["title", "url", "source", "summary"],
                                "additionalProperties": False,
                            },
                        },
                    },
                    "required": ["category", "commentary", "articles"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["introText", "categories"],
        "additionalProperties": False,
    },
}


def response_format(schema: dict[str, Any]) -> dict[str, Any]:
    return {"type": "json_schema", "json_schema": schema}
