"""
Description service routes.

POST /api/describe sends the uploaded photo to Gemini, cleans up the
returned description with the reference rules, and records the request in
the history table.
"""

import logging
import os
from typing import Tuple

from flask import Blueprint, request, jsonify, Response
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

import google.genai as genai
from google.genai import types
from google.genai.errors import APIError

from backend.common.errors import ServiceError, ValidationError, ConfigurationError, UpstreamEmptyResponse
from backend.common.http import request_fields
from backend.common.images import decode_image
from backend.database.db_connection import get_database
from backend.database.history import append_history, build_record, KIND_DESCRIPTION
from backend.vision_service.rules import enforce_rules

load_dotenv()

vision_bp = Blueprint("vision", __name__)

# --- API KEY RETRIEVAL ---
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-1.5-flash")

# --- CLIENT INITIALIZATION ---
gemini_client = None

if GEMINI_API_KEY:
    try:
        gemini_client = genai.Client(api_key=GEMINI_API_KEY)
        logging.info("Successfully initialized Gemini client.")
    except Exception as e:
        gemini_client = None
        logging.warning(f"Gemini client initialization failed: {e}")

# --- INSTRUCTION PROMPT ---
DESCRIBE_PROMPT = """Deskripsikan gambar ini dengan detail.
ATURAN:
1. JANGAN sebut detail wajah (etnis, rambut, kumis, jenggot).
2. BOLEH sebut ekspresi.
3. Setelah subjek tambahkan "(gambar referensi)".
4. Gunakan bahasa Indonesia."""


# --- REQUEST LOGGING ---
@vision_bp.before_request
def before_request() -> None:
    logging.info(f"[Describe] Incoming {request.method} {request.path}")


@vision_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Describe] Response {response.status}")
    return response


def describe_image(image: str) -> str:
    """
    Ask Gemini for a description of the image and apply the reference rules.

    Args:
        image (str): Base64 image or data URL.

    Returns:
        str: The filtered description.

    Raises:
        ValidationError: Image is not valid base64.
        ConfigurationError: No Gemini client is configured.
        UpstreamEmptyResponse: Gemini returned no candidate text.
    """
    mime_type, image_bytes = decode_image(image)

    if gemini_client is None:
        raise ConfigurationError("Gemini API key not configured")

    response = gemini_client.models.generate_content(
        model=GEMINI_MODEL,
        contents=[
            DESCRIBE_PROMPT,
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
        ],
    )

    candidates = response.candidates or []
    if not candidates or not candidates[0].content or not candidates[0].content.parts:
        raise UpstreamEmptyResponse("Gagal mendapat respons dari Gemini")

    text = candidates[0].content.parts[0].text
    if not text:
        raise UpstreamEmptyResponse("Gagal mendapat respons dari Gemini")

    return enforce_rules(text)


# --- ROUTES ---

@vision_bp.route("/describe", methods=["POST"])
def describe() -> Tuple[Response, int]:
    """
    Describe an uploaded image.

    Expects (JSON or form fields):
    - image (str): Base64 image, bare or as a data URL.

    Returns:
        200: {"description": str}
        400: Image missing or not base64.
        500: Gemini not configured, Gemini or database failure.
    """
    try:
        data = request_fields()
        image = data.get("image")

        if not image or not isinstance(image, str):
            raise ValidationError("Image required")

        description = describe_image(image)

        append_history(
            get_database(),
            build_record(KIND_DESCRIPTION, image, description),
        )
    except ServiceError as e:
        logging.warning(f"[Describe] {type(e).__name__}: {e}")
        return e.to_response()
    except HTTPException:
        raise
    except APIError as e:
        logging.error(f"[Describe] Gemini error {e.code}: {e.message}")
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logging.exception(f"[Describe] Describe error: {e}")
        return jsonify({"error": str(e)}), 500

    return jsonify({"description": description}), 200
