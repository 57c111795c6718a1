import pytest
from unittest.mock import MagicMock

from backend.common.errors import UpstreamEmptyResponse
from backend.generation_service.replicate_client import ReplicateClient, extract_output


@pytest.fixture
def replicate(mocker):
    client = ReplicateClient("secret", base_url="https://replicate.test/v1/", version="owner/model")
    mocker.patch.object(client, "session")
    return client


def json_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


def test_create_prediction_payload(replicate):
    replicate.session.post.return_value = json_response({"id": "pred-1", "status": "starting"})

    assert replicate.create_prediction("aGVsbG8=", "a cat") == "pred-1"

    url = replicate.session.post.call_args.args[0]
    body = replicate.session.post.call_args.kwargs["json"]
    assert url == "https://replicate.test/v1/predictions"
    assert body["version"] == "owner/model"
    assert body["input"] == {
        "image": "data:image/jpeg;base64,aGVsbG8=",
        "prompt": "a cat",
        "negative_prompt": "low quality, blurry",
        "num_outputs": 1,
        "num_inference_steps": 30,
        "guidance_scale": 7.5,
    }


def test_create_prediction_without_id(replicate):
    replicate.session.post.return_value = json_response({"status": "starting"})
    with pytest.raises(UpstreamEmptyResponse):
        replicate.create_prediction("aGVsbG8=", "a cat")


def test_get_prediction_maps_status(replicate):
    replicate.session.get.return_value = json_response({
        "status": "succeeded",
        "output": ["https://cdn.example/1.png", "https://cdn.example/2.png"],
    })

    job = replicate.get_prediction("pred-1")

    assert replicate.session.get.call_args.args[0] == "https://replicate.test/v1/predictions/pred-1"
    assert job.succeeded
    assert job.output == "https://cdn.example/1.png"


def test_cancel_prediction(replicate):
    replicate.cancel_prediction("pred-1")
    assert replicate.session.post.call_args.args[0] == "https://replicate.test/v1/predictions/pred-1/cancel"


def test_auth_header():
    client = ReplicateClient("secret")
    assert client.session.headers["Authorization"] == "Token secret"


@pytest.mark.parametrize("output, expected", [
    (["a", "b"], "a"),
    ([], None),
    ("single", "single"),
    (None, None),
    ({"unexpected": 1}, None),
])
def test_extract_output(output, expected):
    assert extract_output(output) == expected
