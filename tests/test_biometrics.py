import asyncio

import pyotp
import pytest

from presence_client.biometrics import BiometricResult, TotpPrompt

SECRET = pyotp.random_base32()


def _prompt(answer, secret=SECRET):
    def read_code(prompt):
        if isinstance(answer, BaseException):
            raise answer
        return answer

    return TotpPrompt(secret, read_code)


@pytest.mark.parametrize("secret", [None, "", "not base32 !!"])
def test_unavailable_without_valid_secret(secret):
    assert asyncio.run(TotpPrompt(secret).is_available()) is False


def test_available_with_secret():
    assert asyncio.run(TotpPrompt(SECRET.lower()).is_available()) is True


def test_current_code_succeeds():
    result = asyncio.run(_prompt(pyotp.TOTP(SECRET).now()).authenticate("Confirm"))

    assert result is BiometricResult.SUCCESS


def test_wrong_code_fails():
    stale = pyotp.TOTP(SECRET).at(0)

    assert asyncio.run(_prompt(stale).authenticate("Confirm")) is BiometricResult.FAILED
    assert asyncio.run(_prompt("abc").authenticate("Confirm")) is BiometricResult.FAILED


@pytest.mark.parametrize("answer", ["", "   ", EOFError(), KeyboardInterrupt()])
def test_empty_or_aborted_input_cancels(answer):
    assert asyncio.run(_prompt(answer).authenticate("Confirm")) is BiometricResult.CANCELLED


def test_reason_is_shown_to_user():
    prompts = []

    def read_code(text):
        prompts.append(text)
        return ""

    asyncio.run(TotpPrompt(SECRET, read_code).authenticate("Unlock presence"))

    assert prompts and prompts[0].startswith("Unlock presence")
