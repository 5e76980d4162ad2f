"""Blog article generation with Gemini."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List

from google import genai

from ..ingestion.utils import retry
from ..slugs import generate_blog_slug
from .storage_service import DuplicateBlogPostError

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
EXCERPT_SOURCE_CHARS = 1000


@dataclass(frozen=True)
class ArticleSpec:
    title: str
    category: str
    focus: str


@dataclass
class GeneratedArticle:
    content: str
    excerpt: str
    read_time: str


PILLAR_ARTICLES: List[ArticleSpec] = [
    ArticleSpec(
        title='The Reinsurance Revolution: How Mid-Market Founders are Turning Insurance Premiums into Wealth',
        category='strategy',
        focus=(
            'Explain how reinsurance domiciles and captive insurance strategies allow business owners '
            'making $5M+ to convert traditional insurance expenses into wealth-building vehicles. '
            'Cover the mechanics, tax benefits, and real-world implementation.'
        ),
    ),
    ArticleSpec(
        title='Why Your Current CPA is Probably Costing You $100k/Year (And How to Spot a Strategic Advisor)',
        category='tax',
        focus=(
            'Contrast traditional CPAs (reactive, compliance-focused) with strategic tax advisors '
            '(proactive, wealth-building focused). Include red flags, questions to ask, and what '
            'high-net-worth business owners should expect from a modern advisor.'
        ),
    ),
    ArticleSpec(
        title='Captives 101: A Complete Guide for High-Margin Business Owners',
        category='strategy',
        focus=(
            'Comprehensive guide to captive insurance for business owners. Cover what captives are, '
            'how they work, who qualifies ($5M+ revenue, specific risk profiles), tax benefits, '
            'setup process, and ongoing management requirements.'
        ),
    ),
]

ALPHA_ARTICLES: List[ArticleSpec] = [
    ArticleSpec(
        title='The 831(b) Edge: Why Your CPA is the Key to Captive Insurance Success',
        category='tax',
        focus=(
            'Write an article focused on the critical role of CPAs in implementing successful 831(b) '
            'captive insurance strategies. Cover why captive insurance requires CPA expertise, the '
            'compliance landmines that trip up business owners, premium calculation and IRS '
            'defensibility, ongoing reporting requirements, and what to look for in a CPA who '
            'specializes in 831(b) structures.'
        ),
    ),
    ArticleSpec(
        title='The Alpha Advantage: How Wealth Advisors Use Reinsurance to De-Risk Portfolios',
        category='wealth',
        focus=(
            'Write an article about how sophisticated wealth advisors incorporate reinsurance '
            'strategies into comprehensive wealth management: uncorrelated assets, risk transfer '
            'that protects family wealth, coordination with financial and estate planning, and '
            'multi-generational wealth transfer.'
        ),
    ),
    ArticleSpec(
        title="Beyond Compliance: Why $5M+ Business Owners are Firing 'Tax Historians' for 'Strategic Partners'",
        category='strategy',
        focus=(
            'Write a provocative article about the shift from reactive "tax historians" to proactive '
            'strategic partners: why $5M+ businesses have different needs, strategies traditional '
            'CPAs miss (cost segregation, captive insurance, QSBS), the opportunity cost of the wrong '
            'advisor, and how to make the switch without disrupting the business.'
        ),
    ),
]

ARTICLE_SETS: Dict[str, List[ArticleSpec]] = {
    'pillar': PILLAR_ARTICLES,
    'alpha': ALPHA_ARTICLES,
}

ARTICLE_PROMPT = """You are an expert financial content writer for "The Alpha Directory", a premium platform connecting business owners with strategic CPAs and Wealth Managers.

Write a comprehensive, authoritative article (1,200-1,500 words) on the following topic:

Title: {title}

Focus: {focus}

Target Audience: Business owners with $5M+ annual revenue who are looking to optimize their tax strategy and build wealth.

Requirements:
1. Use a professional but accessible tone
2. Include specific examples and scenarios
3. Break up content with clear section headers (use ## for h2, ### for h3)
4. Include actionable takeaways
5. Reference real strategies without giving specific legal/financial advice
6. Make the content SEO-friendly with natural keyword usage
7. End with a call-to-action encouraging readers to consult with a strategic advisor

Do NOT include the title in the content - it will be added separately.

Return ONLY the article content, no additional commentary."""

EXCERPT_PROMPT = """Write a compelling 2-sentence excerpt (150-200 characters) for this article that would make a business owner want to read more:

{opening}...

Return ONLY the excerpt, no quotes or additional text."""


def estimate_read_time(content: str) -> str:
    words = len(content.split())
    return f'{max(1, math.ceil(words / WORDS_PER_MINUTE))} min read'


class ArticleWriter:
    """Two model calls per article: the body, then an excerpt of its opening."""

    def __init__(self, client: Any, model: str = 'gemini-2.5-flash') -> None:
        self._client = client
        self._model = model

    @classmethod
    def from_api_key(cls, api_key: str, model: str = 'gemini-2.5-flash') -> 'ArticleWriter':
        return cls(genai.Client(api_key=api_key), model=model)

    def _generate(self, prompt: str) -> str:
        response = self._client.models.generate_content(model=self._model, contents=prompt)
        text = (getattr(response, 'text', None) or '').strip()
        if not text:
            raise ValueError('Empty response from Gemini')
        return text

    @retry(max_attempts=3, base_delay=2.0, backoff='linear')
    async def generate_article(self, spec: ArticleSpec) -> GeneratedArticle:
        logger.info('Generating article: %s', spec.title)
        content = self._generate(ARTICLE_PROMPT.format(title=spec.title, focus=spec.focus))
        excerpt = self._generate(EXCERPT_PROMPT.format(opening=content[:EXCERPT_SOURCE_CHARS]))
        return GeneratedArticle(
            content=content,
            excerpt=excerpt.strip('"'),
            read_time=estimate_read_time(content),
        )


async def publish_articles(
    specs: Iterable[ArticleSpec],
    writer: ArticleWriter,
    storage: Any,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    delay: float = 2.0,
) -> Dict[str, int]:
    """Generate and store each article as a published post.

    Existing slugs are skipped before any model call; a failure on one
    article is logged and the rest continue.
    """

    counts = {'created': 0, 'skipped': 0, 'errored': 0}
    for spec in specs:
        slug = generate_blog_slug(spec.title)
        if storage.blog_slug_exists(slug):
            logger.info('SKIPPED: article already exists (%s)', slug)
            counts['skipped'] += 1
            continue

        try:
            article = await writer.generate_article(spec)
            storage.create_blog_post(
                {
                    'title': spec.title,
                    'slug': slug,
                    'excerpt': article.excerpt,
                    'content': article.content,
                    'category': spec.category,
                    'read_time': article.read_time,
                    'is_published': True,
                }
            )
        except DuplicateBlogPostError:
            logger.info('SKIPPED: article already exists (%s)', slug)
            counts['skipped'] += 1
            continue
        except Exception as exc:
            logger.error('ERROR generating %r: %s', spec.title, exc)
            counts['errored'] += 1
            continue

        logger.info('SUCCESS: created %r (%s, %s)', spec.title, slug, article.read_time)
        counts['created'] += 1
        await sleep(delay)

    return counts
