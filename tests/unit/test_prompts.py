import base64

from ecoscan.core.images import EncodedImage
from ecoscan.core.prompts import SUSTAINABILITY_SYSTEM_PROMPT, build_request

IMAGE = EncodedImage(mime_type="image/jpeg", data=b"\xff\xd8fake-jpeg")


def test_request_has_system_instructions_and_one_user_turn():
    payload = build_request(IMAGE, "good", "Analyze this bottle")

    assert payload["systemInstruction"]["parts"][0]["text"] == SUSTAINABILITY_SYSTEM_PROMPT
    assert len(payload["contents"]) == 1
    turn = payload["contents"][0]
    assert turn["role"] == "user"
    assert turn["parts"][0] == {"text": "Analyze this bottle"}
    inline = turn["parts"][1]["inline_data"]
    assert inline["mime_type"] == "image/jpeg"
    assert base64.b64decode(inline["data"]) == IMAGE.data


def test_default_prompt_mentions_detected_quality():
    payload = build_request(IMAGE, "blur", prompt="   ")

    assert "Image quality detected as: blur." in payload["contents"][0]["parts"][0]["text"]


def test_instructions_forbid_model_supplied_links():
    assert "Never include URLs" in SUSTAINABILITY_SYSTEM_PROMPT
    assert "GENERIC" in SUSTAINABILITY_SYSTEM_PROMPT


def test_reply_is_requested_as_json():
    config = build_request(IMAGE, "good")["generationConfig"]

    assert config["response_mime_type"] == "application/json"
    assert config["maxOutputTokens"] == 3000
