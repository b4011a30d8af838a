"""
Post generator
Turns one article (or one fetched page) into a ready-to-publish post
"""

from __future__ import annotations

import logging

from core import Article, Profile
from utils.exceptions import GenerationError, GeneratorConfigError, LLMConfigurationError, LLMError

from .llm import BaseLLM


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are the copywriter of a news channel. You write punchy, factual posts "
    "that make people stop scrolling."
)

POST_FORMAT = """FORMAT:
- First line: a short, provocative headline starting with the ⚡️ emoji
- 2-3 short paragraphs: the essence of the news, then consequences with numbers and facts, optionally context or a conclusion
- Use **bold** for key facts and numbers
- Short sentences, conversational but without slang, 150-250 words
- Do not add "Source:" or similar lines

Return ONLY the finished post, without any extra comments."""

ARTICLE_PROMPT = """Write a post for a channel with this audience.

CHANNEL TOPIC: {topic}
SUBTOPICS: {subtopics}
KEYWORDS: {keywords}
CONTENT ANGLE: {angle}

NEWS HEADLINE: {title}
NEWS SUMMARY: {summary}

{post_format}"""

CONTENT_PROMPT = """Write a post based on this web page.

PAGE TITLE: {title}
PAGE TEXT:
{body}

{post_format}"""

SOURCE_FOOTER = "Source: {source}"


class PostGenerator:
    """
    Generator collaborator backed by an LLM

    LLM configuration failures surface as ``GeneratorConfigError`` and all
    other LLM failures as ``GenerationError``; output is returned as-is for
    the validator to judge.
    """

    def __init__(self, llm: BaseLLM, *, add_source_footer: bool = True):
        self.llm = llm
        self.add_source_footer = add_source_footer

    async def _complete(self, prompt: str, article_url: str = None) -> str:
        try:
            return await self.llm.achat(prompt, system_prompt=SYSTEM_PROMPT)
        except LLMConfigurationError as exc:
            raise GeneratorConfigError(exc.message, article_url=article_url) from exc
        except LLMError as exc:
            raise GenerationError(exc.message, article_url=article_url) from exc

    async def generate(self, profile: Profile, article: Article) -> str:
        prompt = ARTICLE_PROMPT.format(
            topic=profile.main_topic or ", ".join(profile.keywords),
            subtopics=", ".join(profile.subtopics) or "-",
            keywords=", ".join(profile.keywords) or "-",
            angle=profile.content_angle or "-",
            title=article.title.strip(),
            summary=article.summary.strip(),
            post_format=POST_FORMAT,
        )
        post = (await self._complete(prompt, article.url)).strip()
        if post and self.add_source_footer:
            post = f"{post}\n\n{SOURCE_FOOTER.format(source=article.source)}"
        logger.info("Generated post for %s (%d chars)", article.url, len(post))
        return post

    async def generate_from_content(self, title: str, body: str) -> str:
        prompt = CONTENT_PROMPT.format(title=title.strip(), body=body.strip(), post_format=POST_FORMAT)
        post = (await self._complete(prompt)).strip()
        logger.info("Generated post from page %r (%d chars)", title, len(post))
        return post
