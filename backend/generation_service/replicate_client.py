"""
Replicate predictions HTTP client.

Processing flow:
    1. Submit a prediction (image + prompt + sampling params).
    2. Query the prediction status by id.
    3. Cancel a prediction that is no longer awaited.

HTTP-layer failures propagate via `requests.raise_for_status()`.
"""

import os
from typing import Any, Dict, Optional

import requests
from dotenv import load_dotenv

from backend.common.errors import UpstreamEmptyResponse
from backend.common.images import to_data_url
from backend.generation_service.poller import JobStatus

load_dotenv()

REPLICATE_API_URL = os.getenv("REPLICATE_API_URL", "https://api.replicate.com/v1")
REPLICATE_MODEL_VERSION = os.getenv("REPLICATE_MODEL_VERSION", "stability-ai/stable-diffusion-3.5-large")
REPLICATE_HTTP_TIMEOUT = float(os.getenv("REPLICATE_HTTP_TIMEOUT", 30))

# Fixed sampling parameters sent with every prediction.
NEGATIVE_PROMPT = "low quality, blurry"
NUM_OUTPUTS = 1
NUM_INFERENCE_STEPS = 30
GUIDANCE_SCALE = 7.5


def extract_output(output: Any) -> Optional[str]:
    """Return the first output reference of a prediction, if any."""
    if isinstance(output, list):
        return output[0] if output else None
    if isinstance(output, str) and output:
        return output
    return None


class ReplicateClient:
    """Thin wrapper around the /predictions endpoints."""

    def __init__(
        self,
        token: str,
        base_url: str = REPLICATE_API_URL,
        version: str = REPLICATE_MODEL_VERSION,
        timeout: float = REPLICATE_HTTP_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.version = version
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Token {token}",
            "Content-Type": "application/json",
        })

    def build_payload(self, image: str, prompt: str) -> Dict[str, Any]:
        return {
            "version": self.version,
            "input": {
                "image": to_data_url(image),
                "prompt": prompt,
                "negative_prompt": NEGATIVE_PROMPT,
                "num_outputs": NUM_OUTPUTS,
                "num_inference_steps": NUM_INFERENCE_STEPS,
                "guidance_scale": GUIDANCE_SCALE,
            },
        }

    def create_prediction(self, image: str, prompt: str) -> str:
        """
        Submit a generation job.

        Returns:
            str: The prediction id.

        Raises:
            UpstreamEmptyResponse: Replicate did not return an id.
            requests.HTTPError: Non-2xx response.
        """
        response = self.session.post(
            f"{self.base_url}/predictions",
            json=self.build_payload(image, prompt),
            timeout=self.timeout,
        )
        response.raise_for_status()

        prediction_id = response.json().get("id")
        if not prediction_id:
            raise UpstreamEmptyResponse("Replicate did not return a prediction id")
        return prediction_id

    def get_prediction(self, prediction_id: str) -> JobStatus:
        """Fetch the current status of a prediction."""
        response = self.session.get(
            f"{self.base_url}/predictions/{prediction_id}",
            timeout=self.timeout,
        )
        response.raise_for_status()

        data = response.json()
        return JobStatus(
            status=data.get("status") or "unknown",
            output=extract_output(data.get("output")),
        )

    def cancel_prediction(self, prediction_id: str) -> None:
        """Ask Replicate to stop a prediction nobody is waiting for."""
        response = self.session.post(
            f"{self.base_url}/predictions/{prediction_id}/cancel",
            timeout=self.timeout,
        )
        response.raise_for_status()
