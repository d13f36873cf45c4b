"""
TenderDesk - Generative AI Service

Thin wrapper around an OpenAI-compatible chat-completions endpoint:
- Tender import: field extraction from an image or the first PDF page
- Tender analysis and eligibility check against the company profile
- Stage checklist generation (degrades to an empty list)
- Client relationship summary and report narrative

Prompts live in the prompts/ directory and are loaded on first use.
"""

import base64
import io
import json
from pathlib import Path
from typing import Optional, Dict, Any, List
from openai import OpenAI
from loguru import logger

from app.core.config import settings
from app.core.exceptions import AIServiceError

# Formats every vision endpoint accepts as-is; anything else is re-encoded to PNG
PASSTHROUGH_IMAGE_TYPES = ("image/png", "image/jpeg", "image/webp", "image/gif")


def _load_prompt(filename: str) -> str:
    """Load a prompt from the prompts directory"""
    prompt_path = Path(__file__).parent / "prompts" / filename
    with open(prompt_path, "r", encoding="utf-8") as f:
        return f.read()


# Lazy-loaded prompts
_PROMPT_FILES = {
    "extraction": "tender_extraction_prompt.txt",
    "analysis": "tender_analysis_prompt.txt",
    "checklist": "stage_checklist_prompt.txt",
    "client_summary": "client_summary_prompt.txt",
    "eligibility": "eligibility_prompt.txt",
    "report_summary": "report_summary_prompt.txt",
}
_PROMPTS: Dict[str, Optional[str]] = {name: None for name in _PROMPT_FILES}


def get_prompt(name: str) -> str:
    if _PROMPTS[name] is None:
        _PROMPTS[name] = _load_prompt(_PROMPT_FILES[name])
    return _PROMPTS[name]


def _pdf_first_page_to_base64(pdf_bytes: bytes) -> str:
    """Render page 1 of a PDF to a base64 PNG"""
    from pdf2image import convert_from_bytes

    images = convert_from_bytes(pdf_bytes, dpi=200, first_page=1, last_page=1)
    if not images:
        return ""

    img_buffer = io.BytesIO()
    images[0].save(img_buffer, format="PNG")
    return base64.b64encode(img_buffer.getvalue()).decode("utf-8")


def _image_to_base64(file_bytes: bytes, mime_type: str):
    """(base64, mime) for an uploaded image, re-encoding exotic formats to PNG"""
    if mime_type in PASSTHROUGH_IMAGE_TYPES:
        return base64.b64encode(file_bytes).decode("utf-8"), mime_type

    from PIL import Image

    with Image.open(io.BytesIO(file_bytes)) as image:
        img_buffer = io.BytesIO()
        image.convert("RGB").save(img_buffer, format="PNG")
    return base64.b64encode(img_buffer.getvalue()).decode("utf-8"), "image/png"


def document_to_data_url(file_bytes: bytes, mime_type: str) -> str:
    """data: URL for an image or the first page of a PDF"""
    mime_type = (mime_type or "").lower()
    if mime_type == "application/pdf":
        encoded = _pdf_first_page_to_base64(file_bytes)
        if not encoded:
            raise AIServiceError("Could not render the first page of the PDF")
        return f"data:image/png;base64,{encoded}"
    if mime_type.startswith("image/"):
        encoded, mime_type = _image_to_base64(file_bytes, mime_type)
        return f"data:{mime_type};base64,{encoded}"
    raise AIServiceError(f"Unsupported document type: {mime_type or 'unknown'}")


class AIService:
    """Generative AI integration for tender documents and reporting"""

    def __init__(self, client=None, model: Optional[str] = None, vision_model: Optional[str] = None):
        self._client = client
        self.model = model or settings.AI_MODEL
        self.vision_model = vision_model or settings.AI_VISION_MODEL

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(settings.AI_API_KEY)

    @property
    def client(self):
        if self._client is None:
            if not settings.AI_API_KEY:
                raise AIServiceError("AI processing is disabled. Configure AI_API_KEY to enable it.")
            self._client = OpenAI(api_key=settings.AI_API_KEY, base_url=settings.AI_BASE_URL)
        return self._client

    def _call_ai(
        self,
        system_prompt: str,
        user_content,
        json_mode: bool = True,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]:
        """Make AI API call. Returns None (logged) when the call fails."""
        client = self.client
        kwargs: Dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = client.chat.completions.create(
                model=model or self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                max_tokens=max_tokens or settings.AI_MAX_TOKENS,
                temperature=0,
                **kwargs,
            )
            return response.choices[0].message.content
        except Exception as e:
            logger.error(f"AI API call failed: {e}")
            return None

    def _parse_json_response(self, response: Optional[str]):
        """Parse JSON from AI response, handling markdown code blocks"""
        if not response:
            return None
        try:
            json_str = response
            if "```json" in response:
                json_str = response.split("```json")[1].split("```")[0]
            elif "```" in response:
                json_str = response.split("```")[1].split("```")[0]
            return json.loads(json_str.strip())
        except (json.JSONDecodeError, IndexError) as e:
            logger.error(f"Failed to parse AI response as JSON: {e}")
            logger.debug(f"Response was: {response[:500]}")
            return None

    def _json_call(self, prompt_name: str, user_content, failure_message: str, **kwargs) -> Dict[str, Any]:
        result = self._parse_json_response(self._call_ai(get_prompt(prompt_name), user_content, **kwargs))
        if not isinstance(result, dict):
            raise AIServiceError(failure_message)
        return result

    # =========================================================================
    # TENDER IMPORT / ANALYSIS
    # =========================================================================

    def extract_tender_details(self, file_bytes: bytes, mime_type: str) -> Dict[str, Any]:
        """Extract tender fields (snake_case keys) from an uploaded notice"""
        data_url = document_to_data_url(file_bytes, mime_type)
        logger.info(f"Extracting tender details from {mime_type} upload ({len(file_bytes)} bytes)")

        details = self._json_call(
            "extraction",
            [
                {"type": "image_url", "image_url": {"url": data_url}},
                {"type": "text", "text": "Extract the tender details from this document."},
            ],
            "Failed to analyze the document. It might be unreadable or in an unsupported format.",
            model=self.vision_model,
        )
        logger.info(f"Extracted {len(details)} tender fields")
        return details

    def analyze_tender(self, description: str) -> Dict[str, Any]:
        """summary / requirements / risks / success_factors"""
        if not (description or "").strip():
            raise AIServiceError("The tender has no description to analyze")
        return self._json_call(
            "analysis",
            f"Tender Description:\n---\n{description}\n---",
            "An error occurred during AI analysis.",
        )

    def generate_stage_checklist(self, description: str, stage: str) -> List[str]:
        """
        Checklist texts for one workflow stage.

        Never raises: a disabled service, a failed call or a malformed
        response all yield an empty list. Items without a string `text`
        are dropped.
        """
        if not self.enabled:
            logger.warning("AI checklist generation is disabled (no AI_API_KEY)")
            return []

        try:
            response = self._call_ai(
                get_prompt("checklist"),
                f"Tender Description:\n---\n{description or ''}\n---\n\nCurrent Workflow Stage:\n---\n{stage}\n---",
            )
        except AIServiceError as e:
            logger.warning(f"AI checklist generation unavailable: {e}")
            return []

        parsed = self._parse_json_response(response)
        if isinstance(parsed, dict):
            parsed = parsed.get("items")
        if not isinstance(parsed, list):
            logger.error(f"AI response for checklist was not a valid array: {str(parsed)[:200]}")
            return []

        return [
            item["text"] for item in parsed
            if isinstance(item, dict) and isinstance(item.get("text"), str) and item["text"].strip()
        ]

    def check_eligibility(self, tender_text: str) -> Dict[str, Any]:
        """criteria [{criterion, details, met}] + summary, against the configured company profile"""
        profile = (
            f"Company: {settings.COMPANY_NAME}\n"
            f"- Annual Turnover: {settings.COMPANY_TURNOVER_LAKHS} Lakhs\n"
            f"- Years in Business: {settings.COMPANY_YEARS_IN_BUSINESS}\n"
            f"- Key Certifications: {', '.join(settings.COMPANY_CERTIFICATIONS)}"
        )
        result = self._json_call(
            "eligibility",
            f"Company Profile:\n{profile}\n\nTender Text:\n---\n{tender_text}\n---",
            "Failed to run AI eligibility check. Please try again.",
        )
        result.setdefault("criteria", [])
        return result

    # =========================================================================
    # CRM / REPORTING
    # =========================================================================

    def summarize_client_activity(self, client: Dict[str, Any], tenders: List[Dict[str, Any]]) -> Dict[str, Any]:
        """strategic_summary + actionable_suggestions for one client"""
        data = {
            "profile": {
                "name": client.get("name"),
                "industry": client.get("industry"),
                "status": client.get("status"),
                "joined_date": client.get("joined_date"),
                "notes": client.get("notes"),
            },
            "tender_history": [
                {
                    "title": t.get("title"),
                    "status": t.get("status"),
                    "value": t.get("value"),
                    "reason_for_loss": t.get("reason_for_loss"),
                    "item_category": t.get("item_category"),
                }
                for t in tenders
            ],
            "interaction_summary": "; ".join(
                i.get("notes", "") for i in (client.get("interactions") or [])[:3]
            ),
        }
        return self._json_call(
            "client_summary",
            f"Data:\n{json.dumps(data, indent=2, default=str)}",
            "Failed to generate AI summary.",
        )

    def generate_report_summary(self, data: Dict[str, Any]) -> str:
        """One plain-text paragraph"""
        response = self._call_ai(
            get_prompt("report_summary"),
            f"Data:\n{json.dumps(data, indent=2, default=str)}",
            json_mode=False,
        )
        if not response or not response.strip():
            raise AIServiceError("Failed to generate AI report summary.")
        return response.strip()


ai_service = AIService()


def get_ai_service() -> AIService:
    """FastAPI dependency; tests override it with a fake-client service"""
    return ai_service
