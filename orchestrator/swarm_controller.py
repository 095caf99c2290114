from collections.abc import Sequence

from models.search_models import ArticleResult, Perspective, SearchOutcome
from orchestrator.answer_generator import AnswerGenerator, FALLBACK_CONTENT, fallback_follow_up_questions
from orchestrator.core import SearchRetrievalOrchestrator, StatusCallback, notify_status
from orchestrator.perspective_agent import PerspectiveAgent
from utils.logger import get_logger

logger = get_logger(__name__)


class SwarmController:
    """
    Runs one search end to end: retrieval, perspectives (pro only), answer.

    Only InvalidInputError from retrieval propagates; every later failure
    degrades to an empty perspective list or the apology article.
    """

    def __init__(
        self,
        retriever: SearchRetrievalOrchestrator,
        answer_generator: AnswerGenerator,
        perspective_agent: PerspectiveAgent | None = None,
    ):
        self.retriever = retriever
        self.answer_generator = answer_generator
        self.perspective_agent = perspective_agent

    async def process_query(
        self,
        query: str,
        image_refs: Sequence[str] = (),
        is_pro: bool = False,
        on_status_update: StatusCallback | None = None,
    ) -> SearchOutcome:
        logger.info(
            "Starting query processing",
            extra={"extra_fields": {"query": (query or "")[:100], "is_pro": is_pro, "images": len(image_refs or ())}},
        )
        notify_status(on_status_update, "Searching through reliable sources...")
        bundle = await self.retriever.orchestrate(query, image_refs, on_status_update)

        perspectives: list[Perspective] = []
        if is_pro and self.perspective_agent is not None and bundle.query:
            notify_status(on_status_update, "Analyzing different perspectives...")
            perspectives = await self._get_perspectives(bundle.query, is_pro)

        notify_status(on_status_update, "Crafting a comprehensive answer...")
        try:
            article = await self.answer_generator.generate(bundle, on_status_update)
        except Exception as e:
            logger.error(
                "Answer generation raised, using apology article",
                extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
            )
            article = ArticleResult(
                content=FALLBACK_CONTENT,
                follow_up_questions=fallback_follow_up_questions(bundle.query),
                is_fallback=True,
            )

        notify_status(on_status_update, "Search completed successfully!")
        logger.info(
            "Query processing completed",
            extra={
                "extra_fields": {
                    "results": len(bundle.results),
                    "perspectives": len(perspectives),
                    "images": len(bundle.images),
                    "videos": len(bundle.videos),
                    "is_fallback_article": article.is_fallback,
                }
            },
        )
        return SearchOutcome(bundle=bundle, article=article, perspectives=tuple(perspectives))

    async def _get_perspectives(self, query: str, is_pro: bool) -> list[Perspective]:
        try:
            return await self.perspective_agent.generate_perspectives(query, is_pro=is_pro)
        except Exception as e:
            logger.warning(
                "Perspective generation failed",
                extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
            )
            return []
