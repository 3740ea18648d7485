from __future__ import annotations


class WineSnapError(Exception):
    """Base class for errors surfaced to API callers."""


class MissingCredentialError(WineSnapError):
    def __init__(self, env_var: str):
        super().__init__(f"Missing {env_var}")
        self.env_var = env_var


class ProviderError(WineSnapError):
    """The model provider answered with a non-success status.

    `body` is the full, undecoded response body so the failure can be diagnosed.
    """

    def __init__(self, provider: str, status_code: int, body: str):
        super().__init__(f"{provider} error ({status_code}): {body}")
        self.provider = provider
        self.status_code = status_code
        self.body = body


class ModelOutputError(WineSnapError):
    """Model text could not be turned into the expected JSON object."""

    def __init__(self, stage: str, message: str, raw: str):
        super().__init__(message)
        self.stage = stage
        self.message = message
        self.raw = raw


class ImageDecodeError(WineSnapError, OSError):
    pass
