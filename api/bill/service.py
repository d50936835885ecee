"""
Bill scanning.

Flow:
1) Validate and read the uploaded image (size-limited)
2) Ask an Ollama vision model for the expense fields as JSON
3) Store the image under the uploads directory (served at /uploads/...)
4) Return the stored image URL plus whatever fields could be parsed
"""

from __future__ import annotations

import base64
import datetime as dt
import json
import logging
import re
import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile

from core import ollama
from core.settings import MAX_BODY_BYTES, UPLOADS_PATH, env_str

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
DEFAULT_BILL_SCAN_MODEL = "llava"
READ_CHUNK_BYTES = 1024 * 1024  # 1 MiB

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

logger = logging.getLogger(__name__)


def bill_scan_model() -> str:
    return env_str("BILL_SCAN_MODEL", DEFAULT_BILL_SCAN_MODEL)


def system_prompt() -> str:
    return (
        "You read photos of receipts and bills.\n"
        "Return ONLY valid JSON with this exact schema:\n"
        '{"amount": number, "category": string, "date": "YYYY-MM-DD", "description": string}\n'
        "amount is the final total paid. category is one short word such as Food, Transport, Shopping, "
        "Utilities, Health or Other. Use null for any field you cannot read."
    )


def validate_upload(file: UploadFile) -> str:
    """
    Return the normalized extension if this upload is an accepted image type.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename.")

    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: {sorted(ALLOWED_EXTENSIONS)}",
        )
    return ext


async def read_upload_bytes(file: UploadFile, max_bytes: int = MAX_BODY_BYTES) -> bytes:
    buf = bytearray()
    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(status_code=413, detail=f"File too large. Max is {max_bytes} bytes.")

    if not buf:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    return bytes(buf)


def store_image(data: bytes, ext: str, *, uploads_dir: str) -> str:
    """
    Write the image under `uploads_dir` and return its public path.
    """
    folder = Path(uploads_dir) / "bills"
    folder.mkdir(parents=True, exist_ok=True)
    name = f"{uuid.uuid4().hex}{ext}"
    (folder / name).write_bytes(data)
    return f"{UPLOADS_PATH}/bills/{name}"


def _parse_amount(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        cleaned = re.sub(r"[^0-9.\-]", "", str(value).replace(",", ""))
        try:
            amount = float(cleaned)
        except ValueError:
            return None
    return round(amount, 2) if amount > 0 else None


def _parse_date(value: object) -> str | None:
    try:
        return dt.date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        return None


def _clean_text(value: object, *, max_length: int = 200) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()[:max_length]


def parse_extraction(text: str) -> dict | None:
    """
    Parse the model reply into {amount, category, date, description}.
    Returns None when no usable amount can be found.
    """
    raw = (text or "").strip()
    try:
        data = json.loads(raw)
    except ValueError:
        match = _JSON_OBJECT_RE.search(raw)
        if match is None:
            return None
        try:
            data = json.loads(match.group(0))
        except ValueError:
            return None

    if not isinstance(data, dict):
        return None

    amount = _parse_amount(data.get("amount"))
    if amount is None:
        return None

    return {
        "amount": amount,
        "category": _clean_text(data.get("category"), max_length=50) or "Other",
        "date": _parse_date(data.get("date")) if data.get("date") else None,
        "description": _clean_text(data.get("description")),
    }


async def scan_bill(file: UploadFile, *, uploads_dir: str) -> dict:
    ext = validate_upload(file)
    data = await read_upload_bytes(file)

    try:
        reply = await ollama.chat_text(
            model=bill_scan_model(),
            system_prompt=system_prompt(),
            user_prompt="Extract the expense from this bill.",
            images=[base64.b64encode(data).decode("ascii")],
            json_output=True,
            temperature=0.0,
        )
    except ollama.OllamaError as exc:
        logger.warning("Bill scan model call failed: %s", exc)
        raise HTTPException(status_code=502, detail=f"Bill scanning is unavailable: {exc}") from exc

    # Stored only after the model answered.
    image_url = store_image(data, ext, uploads_dir=uploads_dir)

    extracted = parse_extraction(reply)
    result: dict = {"imageUrl": image_url, "extracted": extracted}
    if extracted is None:
        result["warning"] = "Could not read an amount from this bill."
    return result
