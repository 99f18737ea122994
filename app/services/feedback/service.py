"""Interview feedback generation."""
import logging
from typing import Any, Callable, List
from openai import AsyncOpenAI
from pydantic import ValidationError

from app.core.errors import AppError, ErrorKind
from app.services.call_session.models import TranscriptMessage
from app.services.feedback.models import (
    CATEGORY_NAMES,
    CreateFeedbackParams,
    FeedbackAssessment,
    FeedbackGenerator,
    FeedbackResult,
)
from app.services.persistence.interviews import FeedbackPersistenceService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a professional interviewer analyzing a mock interview. "
    "Your task is to evaluate the candidate based on structured categories. "
    "Be thorough and detailed in your analysis. Don't be lenient with the "
    "candidate. If there are mistakes or areas for improvement, point them out."
)


def format_transcript(transcript: List[TranscriptMessage]) -> str:
    """Render a transcript as ``- role: content`` lines."""
    return "".join(f"- {message.role}: {message.content}\n" for message in transcript)


def build_feedback_prompt(transcript: List[TranscriptMessage]) -> str:
    categories = "\n".join(f"- {name}" for name in CATEGORY_NAMES)
    return f"""You are an AI interviewer analyzing a mock interview.

Transcript:
{format_transcript(transcript)}
Score the candidate from 0 to 100 in:
{categories}

Respond with a JSON object with exactly these keys:
- "totalScore": integer 0-100
- "categoryScores": list of 5 objects {{"name", "score", "comment"}}, one per category above, using the category names verbatim
- "strengths": list of strings
- "areasForImprovement": list of strings
- "finalAssessment": string
"""


class FeedbackService(FeedbackGenerator):
    """Scores a transcript with the language model and stores the result."""

    def __init__(
        self,
        client: AsyncOpenAI,
        session_factory: Callable[[], Any],
        model: str = "gpt-4o-mini",
    ):
        self.client = client
        self.session_factory = session_factory
        self.model = model

    async def assess(self, transcript: List[TranscriptMessage]) -> FeedbackAssessment:
        """Ask the model for a rubric assessment of the transcript."""
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_feedback_prompt(transcript)},
            ],
            temperature=0.2,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        return FeedbackAssessment.model_validate_json(content)

    async def _store(
        self, params: CreateFeedbackParams, assessment: FeedbackAssessment
    ) -> str:
        fields = {
            "interview_id": params.interview_id,
            "user_id": params.user_id,
            "total_score": assessment.totalScore,
            "category_scores": [score.model_dump() for score in assessment.categoryScores],
            "strengths": assessment.strengths,
            "areas_for_improvement": assessment.areasForImprovement,
            "final_assessment": assessment.finalAssessment,
        }
        try:
            async with self.session_factory() as db:
                feedback = await FeedbackPersistenceService(db).save_feedback(
                    fields, feedback_id=params.feedback_id
                )
                return feedback.id
        except Exception as e:
            raise AppError(ErrorKind.PERSISTENCE_ERROR, f"Feedback save failed: {e}", cause=e) from e

    async def create_feedback(self, params: CreateFeedbackParams) -> FeedbackResult:
        """Generate and persist feedback; failures come back as ``success=False``."""
        logger.info(
            f"[FEEDBACK] Generating feedback - interview: {params.interview_id}, "
            f"user: {params.user_id}, turns: {len(params.transcript)}"
        )
        try:
            assessment = await self.assess(params.transcript)
            feedback_id = await self._store(params, assessment)
        except ValidationError as e:
            logger.error(f"[FEEDBACK] Model returned an invalid assessment: {e}")
            return FeedbackResult(success=False)
        except AppError as e:
            logger.error(f"[FEEDBACK] Error saving feedback ({e.kind.value}): {e.message}", exc_info=True)
            return FeedbackResult(success=False)
        except Exception as e:
            logger.error(
                f"[FEEDBACK] Error generating feedback - interview: {params.interview_id}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return FeedbackResult(success=False)

        logger.info(f"[FEEDBACK] Feedback saved - interview: {params.interview_id}, id: {feedback_id}")
        return FeedbackResult(success=True, feedback_id=feedback_id)
