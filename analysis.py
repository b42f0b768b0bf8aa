"""Prompt templates and post-processing of Gemini replies."""

import json
import logging
import math
import re

from pydantic import ValidationError

from schemas import ScanResult

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are an environmental AI that analyzes product images for sustainability.
Return ONLY pure JSON in this format:
{
  "greenScore": number (0-100),
  "energyUse": string,
  "recyclability": "High|Medium|Low",
  "ethics": "Good|Moderate|Poor",
  "ecosystemImpact": "Minimal|Moderate|Severe",
  "reuseIdeas": [string],
  "summary": string
}
Evaluate the product's sustainability, materials, and impact."""

QUESTION_PROMPT = """You are GreenLens, a friendly sustainability assistant.
Here is the analysis of the product the user just scanned:
{analysis}

Answer the user's question in 2-4 short sentences, using the analysis above.
Question: {question}"""

CHAT_PROMPT = """You are GreenLens, a friendly sustainability assistant.
These are the user's most recent product scans, oldest first:
{history}

Use them as context when relevant. Keep answers short and practical.
User: {message}"""

CHAT_FALLBACK = "Sorry, I couldn't come up with an answer right now. Please try again."

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a wrapping ```json ... ``` block, if any."""
    text = (text or "").strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    if text.startswith("```"):
        # opening fence without a closing one
        return re.sub(r"^```[a-zA-Z]*\s*", "", text).strip()
    return text


def _finite_float(text):
    value = float(text)
    return value if math.isfinite(value) else None


def parse_analysis(reply: str) -> dict:
    """Turn the model reply into an analysis payload.

    Unparsable text comes back as ``{"raw": text}``. JSON that does not
    match ``ScanResult`` is kept but flagged with a ``warnings`` list.
    Non-finite numbers (``Infinity``, ``NaN``, ``1e400``) are read as null.
    """
    text = strip_code_fences(reply)
    try:
        data = json.loads(text, parse_float=_finite_float, parse_constant=lambda name: None)
    except ValueError as e:
        # JSONDecodeError, or an integer literal too long to convert
        logger.warning("Could not parse AI reply as JSON: %s", e)
        return {"raw": text}

    if not isinstance(data, dict):
        logger.warning("AI reply is JSON but not an object: %r", type(data).__name__)
        return {"raw": text}

    try:
        return ScanResult.model_validate(data).model_dump()
    except ValidationError as e:
        warnings = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        logger.warning("AI reply failed schema validation: %s", warnings)
        flagged = dict(data)
        flagged["warnings"] = warnings
        return flagged


def score_label(score) -> str:
    if score >= 70:
        return "Excellent"
    if score >= 40:
        return "Moderate"
    return "Poor"


def default_answer(analysis: dict) -> str:
    """Sentence shown when the user did not ask anything."""
    score = analysis.get("greenScore")
    if not isinstance(score, (int, float)):
        return "Here is what I could find about this product. Ask me anything about it!"
    recyclability = analysis.get("recyclability") or "unknown"
    return (
        f"This product scores {score}/100 ({score_label(score)}) on sustainability "
        f"with {str(recyclability).lower()} recyclability. Ask me how to reuse or recycle it!"
    )


def question_prompt(analysis: dict, question: str) -> str:
    context = {k: v for k, v in analysis.items() if k not in ("filename", "timestamp")}
    return QUESTION_PROMPT.format(analysis=json.dumps(context, indent=2), question=question.strip())


def _as_list(value):
    return value if isinstance(value, list) else []


def _idea_text(item) -> str:
    if isinstance(item, dict):
        return str(item.get("idea") or item.get("title") or json.dumps(item))
    return str(item)


def describe_scan(index: int, scan: dict) -> str:
    head = f"Scan {index}"
    if scan.get("filename"):
        head += f" ({scan['filename']}"
        head += f", {scan['timestamp']})" if scan.get("timestamp") else ")"
    if "raw" in scan:
        return f"{head}: {scan['raw']}"
    ideas = [_idea_text(i) for i in _as_list(scan.get("reuseIdeas"))]
    return (
        f"{head}: score {scan.get('greenScore')}/100, energy use: {scan.get('energyUse')}, "
        f"recyclability: {scan.get('recyclability')}, ethics: {scan.get('ethics')}, "
        f"ecosystem impact: {scan.get('ecosystemImpact')}. Summary: {scan.get('summary')}. "
        f"Reuse ideas: {'; '.join(ideas) if ideas else 'none'}."
    )


def build_chat_prompt(scans: list, message: str) -> str:
    history = "\n".join(describe_scan(i, scan) for i, scan in enumerate(scans, start=1))
    return CHAT_PROMPT.format(history=history, message=message.strip())
