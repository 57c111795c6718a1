"""
Generation service routes.

POST /api/generate submits a Replicate prediction built from the uploaded
photo and the user's prompt, waits for it to finish, and records the
request in the history table.
"""

import logging
import os
import threading
from typing import Optional, Tuple

import requests
from flask import Blueprint, request, jsonify, Response
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from backend.common.errors import (
    ServiceError,
    ValidationError,
    ConfigurationError,
    JobCancelled,
    JobTimeoutOrMissingOutput,
)
from backend.common.http import request_fields
from backend.common.images import decode_image
from backend.database.db_connection import get_database
from backend.database.history import append_history, build_record, KIND_GENERATION
from backend.generation_service.poller import wait_for_completion, POLL_INTERVAL_SECONDS, POLL_MAX_ATTEMPTS
from backend.generation_service.replicate_client import ReplicateClient

load_dotenv()

generation_bp = Blueprint("generation", __name__)

REPLICATE_API_TOKEN = os.getenv("REPLICATE_API_TOKEN")

# Optional overall limit on how long one request may wait for its job.
_deadline = os.getenv("GENERATION_REQUEST_DEADLINE")
GENERATION_REQUEST_DEADLINE: Optional[float] = float(_deadline) if _deadline else None


# --- REQUEST LOGGING ---
@generation_bp.before_request
def before_request() -> None:
    logging.info(f"[Generate] Incoming {request.method} {request.path}")


@generation_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Generate] Response {response.status}")
    return response


def get_replicate_client() -> ReplicateClient:
    """
    Build a Replicate client from the configured token.

    Raises:
        ConfigurationError: REPLICATE_API_TOKEN is not set.
    """
    if not REPLICATE_API_TOKEN:
        raise ConfigurationError("Replicate token not configured")
    return ReplicateClient(REPLICATE_API_TOKEN)


def cancel_quietly(client: ReplicateClient, prediction_id: str) -> None:
    """Cancel an abandoned prediction; a failed cancel only gets logged."""
    try:
        client.cancel_prediction(prediction_id)
        logging.info(f"[Generate] Cancelled prediction {prediction_id}")
    except requests.RequestException as e:
        logging.warning(f"[Generate] Could not cancel prediction {prediction_id}: {e}")


def generate_image(image: str, prompt: str) -> str:
    """
    Submit a prediction and block until it produces an image.

    Args:
        image (str): Base64 reference image or data URL.
        prompt (str): Generation prompt.

    Returns:
        str: URL of the generated image.

    Raises:
        ValidationError, ConfigurationError, UpstreamEmptyResponse,
        JobFailed, JobTimeoutOrMissingOutput, JobCancelled
    """
    decode_image(image)
    client = get_replicate_client()

    prediction_id = client.create_prediction(image, prompt)
    logging.info(f"[Generate] Submitted prediction {prediction_id}")

    cancel_event = threading.Event()
    timer = None
    if GENERATION_REQUEST_DEADLINE:
        timer = threading.Timer(GENERATION_REQUEST_DEADLINE, cancel_event.set)
        timer.daemon = True
        timer.start()

    try:
        return wait_for_completion(
            prediction_id,
            client.get_prediction,
            interval=POLL_INTERVAL_SECONDS,
            max_attempts=POLL_MAX_ATTEMPTS,
            cancel_event=cancel_event,
        )
    except (JobCancelled, JobTimeoutOrMissingOutput, requests.RequestException):
        cancel_quietly(client, prediction_id)
        raise
    finally:
        if timer is not None:
            timer.cancel()


# --- ROUTES ---

@generation_bp.route("/generate", methods=["POST"])
def generate() -> Tuple[Response, int]:
    """
    Generate an image from a reference photo and a prompt.

    Expects (JSON or form fields):
    - image (str): Base64 image, bare or as a data URL.
    - prompt (str)

    Returns:
        200: {"imageUrl": str}
        400: Image or prompt missing, or image not base64.
        500: Token not configured, Replicate failure, job failed or timed out,
             database failure.
    """
    try:
        data = request_fields()
        image = data.get("image")
        prompt = data.get("prompt")

        if not isinstance(image, str) or not isinstance(prompt, str) or not image or not prompt:
            raise ValidationError("Image and prompt required")

        image_url = generate_image(image, prompt)

        append_history(
            get_database(),
            build_record(KIND_GENERATION, image, {"imageUrl": image_url}, prompt=prompt),
        )
    except ServiceError as e:
        logging.warning(f"[Generate] {type(e).__name__}: {e}")
        return e.to_response()
    except HTTPException:
        raise
    except requests.HTTPError as e:
        logging.error(f"[Generate] Replicate error: {e.response.text if e.response is not None else e}")
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logging.exception(f"[Generate] Generate error: {e}")
        return jsonify({"error": str(e)}), 500

    return jsonify({"imageUrl": image_url}), 200
