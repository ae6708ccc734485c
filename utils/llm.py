"""Claude API client for the pipeline stages."""

import logging
import threading
import time

import anthropic
import httpx

from core.errors import GenerationCancelled, GenerationError

logger = logging.getLogger(__name__)

_CANCEL_POLL = 0.2  # seconds between cancel checks while a stream is open

# Errors worth another attempt. The SDK wraps request failures in APIError,
# but a connection dropped while the body streams in surfaces as raw httpx.
RETRYABLE_ERRORS = (anthropic.APIError, httpx.TransportError)


def get_client(settings):
    """Return an Anthropic client for already-validated settings."""
    return anthropic.Anthropic(api_key=settings.api_key)


def user_message(text):
    return {"role": "user", "content": text}


def _raise_if_cancelled(cancel):
    if cancel is not None and cancel.is_set():
        raise GenerationCancelled("generation cancelled")


def _close_on_cancel(stream, cancel):
    """Close stream from a watcher thread as soon as cancel is set.

    A blocked read then fails instead of waiting for the next chunk.
    Returns an Event the caller sets once it is done with the stream.
    """
    finished = threading.Event()
    if cancel is None:
        return finished

    def watch():
        while not finished.is_set():
            if cancel.wait(_CANCEL_POLL):
                if not finished.is_set():
                    logger.debug("Cancel requested, closing response stream")
                    stream.close()
                return

    threading.Thread(target=watch, name="stream-cancel-watch", daemon=True).start()
    return finished


class GenerationClient:
    """Sends one system prompt + conversation to Claude, returns the text.

    The cancellation handle is a threading.Event. It is checked before every
    attempt and between streamed chunks, and a watcher closes the open
    stream when it is set, so a cancel lands while the request is still in
    flight rather than after it completes. Connecting and waiting for the
    response headers are bounded by settings.request_timeout.
    """

    def __init__(self, settings, client=None):
        self.settings = settings
        self._client = client if client is not None else get_client(settings)

    def send(self, system_prompt, messages, cancel=None):
        attempts = max(1, self.settings.max_attempts)

        for attempt in range(1, attempts + 1):
            _raise_if_cancelled(cancel)
            try:
                return self._stream(system_prompt, list(messages), cancel)
            except RETRYABLE_ERRORS as e:
                if attempt < attempts:
                    logger.warning("Claude API error (attempt %d/%d): %s", attempt, attempts, e)
                    if cancel is not None:
                        cancel.wait(self.settings.retry_delay)
                    else:
                        time.sleep(self.settings.retry_delay)
                    continue
                raise GenerationError(f"claude API error: {e}") from e

    def _stream(self, system_prompt, messages, cancel):
        # Streaming avoids the SDK timeout for large max_tokens
        chunks = []
        with self._client.messages.stream(
            model=self.settings.model,
            max_tokens=self.settings.max_tokens,
            system=system_prompt,
            messages=messages,
            timeout=self.settings.request_timeout,
        ) as stream:
            finished = _close_on_cancel(stream, cancel)
            try:
                for chunk in stream.text_stream:
                    _raise_if_cancelled(cancel)
                    chunks.append(chunk)
                final = stream.get_final_message()
            except Exception:
                # Whatever the closed stream raised, a set cancel wins
                _raise_if_cancelled(cancel)
                raise
            finally:
                finished.set()

        if final.stop_reason == "max_tokens":
            logger.warning("Response hit the %d token limit; output is truncated",
                           self.settings.max_tokens)
        return "".join(chunks)
