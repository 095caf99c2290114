"""Prompt text for grounded, cited answer generation."""

from collections.abc import Sequence

from models.search_models import SearchResult

from .normalize import extract_site_name

MAX_SOURCES = 8
MAX_CONTENT_CHARS = 600

ANSWER_SYSTEM_PROMPT = """You are an expert research analyst creating comprehensive, well-sourced articles with intelligent follow-up questions.

CRITICAL: You must base your content ONLY on the provided sources. Do not add information not found in the sources.

RESPONSE FORMAT - Return a JSON object with this exact structure:
{
  "content": "Your comprehensive answer here...",
  "followUpQuestions": [
    "Follow-up question 1",
    "Follow-up question 2",
    "Follow-up question 3",
    "Follow-up question 4",
    "Follow-up question 5"
  ],
  "citations": [
    {
      "url": "url1",
      "title": "Article Title",
      "siteName": "Website Name"
    }
  ]
}

CONTENT GUIDELINES:
- Base ALL information directly on the provided sources
- Use website names for citations: [Website Name] instead of [Source X]
- When multiple sources from same site, use: [Website Name +2] format
- Include specific facts, dates, numbers, and quotes from the sources
- Structure with clear sections using ### headers
- Present different viewpoints when sources conflict
- Do NOT add external knowledge not found in the provided sources

FOLLOW-UP QUESTIONS GUIDELINES:
- Generate 5 intelligent follow-up questions that naturally extend the topic
- Make questions specific and actionable based on the content discussed

CITATION REQUIREMENTS:
- Use [Website Name] format for single sources
- Use [Website Name +2] format when 3+ sources from same site
- Provide full citation details in the citations array with url, title, and siteName"""

_CITATION_RULES = """Requirements:
- Ground ALL information in the provided sources
- Use [Website Name] citations (not [Source X]) for every major claim or fact
- For multiple sources from same site, use [Website Name +X] format
- Generate 5 thoughtful follow-up questions that extend the topic naturally
- End with natural concluding thoughts, avoid forced summary citing all sources

CITATION EXAMPLES:
- Single source: [Wikipedia]
- Multiple from same site: [Wikipedia +2] (for 3 total sources)
- Different sites: [Wikipedia] [Reuters] [TechCrunch]

Remember: Base your response entirely on the source material provided. Do not add external information."""


def truncate_content(content: str, max_chars: int = MAX_CONTENT_CHARS) -> str:
    if len(content) > max_chars:
        return content[:max_chars] + "..."
    return content


def build_source_context(
    results: Sequence[SearchResult],
    max_sources: int = MAX_SOURCES,
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> str:
    """
    Format the top results as numbered, site-labelled source blocks.

    Example block:
        Source 1 - wikipedia:
        URL: https://en.wikipedia.org/wiki/Cat
        Website: wikipedia
        Title: Cat
        Content: The cat is a domestic species...
        ---
    """
    blocks = []
    for index, result in enumerate(results[:max_sources], start=1):
        site_name = extract_site_name(result.url)
        blocks.append(
            "\n".join(
                [
                    f"Source {index} - {site_name}:",
                    f"URL: {result.url}",
                    f"Website: {site_name}",
                    f"Title: {result.title}",
                    f"Content: {truncate_content(result.content or '', max_content_chars)}",
                    "---",
                ]
            )
        )
    return "\n\n".join(blocks)


def build_user_prompt(
    query: str,
    source_context: str,
    *,
    is_reverse_image_search: bool = False,
) -> str:
    """
    Pick the user prompt variant: text search, image with text, or image only.
    """
    query = (query or "").strip()
    if is_reverse_image_search and not query:
        header = (
            "The user uploaded an image without a question.\n\n"
            "Reverse image search results:\n"
            f"{source_context}\n\n"
            "TASK: Identify what the image most likely shows and write a well-sourced article "
            "about it using ONLY the information in the results above."
        )
    elif is_reverse_image_search:
        header = (
            f'Query: "{query}"\n\n'
            "The user uploaded an image along with this question.\n\n"
            "Source Material (from reverse image search and a related web search):\n"
            f"{source_context}\n\n"
            "TASK: Answer the question about the image using ONLY the information provided "
            "in the sources above."
        )
    else:
        header = (
            f'Query: "{query}"\n\n'
            "Source Material:\n"
            f"{source_context}\n\n"
            "TASK: Create a comprehensive, well-sourced article that directly addresses the query "
            "using ONLY the information provided in the sources above."
        )
    return f"{header}\n\n{_CITATION_RULES}"


def build_answer_messages(
    query: str,
    results: Sequence[SearchResult],
    *,
    is_reverse_image_search: bool = False,
    max_sources: int = MAX_SOURCES,
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> list[dict[str, str]]:
    source_context = build_source_context(results, max_sources, max_content_chars)
    return [
        {"role": "system", "content": ANSWER_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": build_user_prompt(
                query, source_context, is_reverse_image_search=is_reverse_image_search
            ),
        },
    ]


PERSPECTIVE_SYSTEM_PROMPT = """You analyze search results and identify distinct perspectives on a topic.

Return a JSON object with this exact structure:
{
  "perspectives": [
    {"title": "Short perspective title", "content": "Two or three sentences grounded in the sources."}
  ]
}

Provide exactly 5 perspectives. Base every perspective only on the provided sources."""


def build_perspective_messages(query: str, results: Sequence[SearchResult]) -> list[dict[str, str]]:
    source_context = build_source_context(results)
    return [
        {"role": "system", "content": PERSPECTIVE_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f'Query: "{query}"\n\nSource Material:\n{source_context}\n\n'
            "Identify 5 distinct perspectives on this query.",
        },
    ]
