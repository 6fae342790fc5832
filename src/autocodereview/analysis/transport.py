"""
Analysis Service Transports

Narrow adapters that send one diff chunk to the external analysis service
and return the raw response payload. Retry, chunking and degradation live in
the ReviewClient; transports only translate failures into the pipeline's
error types.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ..exceptions import AnalysisAuthFailure, AnalysisTransientFailure, MalformedResponse


logger = logging.getLogger(__name__)


REVIEW_SYSTEM_PROMPT = """You are an automated code reviewer for pull requests.
You receive a unified diff. Report concrete problems in the changed code:
bugs, security issues, error handling gaps, performance problems and
maintainability concerns. Do not restate the diff and do not praise it.

Respond with a single JSON object and nothing else:
{"findings": [{"file": "<path or null for diff-wide remarks>",
               "line": <line number in the new file or null>,
               "severity": "critical" | "high" | "medium" | "low" | "info",
               "message": "<one or two sentences>"}]}
Return {"findings": []} when there is nothing to report."""


class AnalysisTransport(ABC):
    """Sends one chunk to the analysis service."""

    @abstractmethod
    def submit(self, diff_chunk: str, credential: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Submit a diff chunk for analysis.

        Args:
            diff_chunk: Raw diff text
            credential: Service credential, sent out of band from the payload
            options: Request options such as ``max_findings``

        Returns:
            Raw response payload ``{"findings": [...], "error": ...}``

        Raises:
            AnalysisAuthFailure: The credential was rejected
            AnalysisTransientFailure: Network error, timeout or retryable status
            MalformedResponse: The response could not be decoded
        """


class HTTPAnalysisTransport(AnalysisTransport):
    """
    JSON-over-HTTP analysis service client.

    Request body is ``{"diff_chunk": ..., "options": {...}}``; the credential
    goes in the ``Authorization`` header so it never becomes part of the
    analyzed text.
    """

    TRANSIENT_STATUSES = {408, 425, 429, 500, 502, 503, 504}
    AUTH_STATUSES = {401, 403}

    def __init__(self, endpoint: str, timeout: float = 60, session: Optional[requests.Session] = None):
        """
        Initialize HTTP transport.

        Args:
            endpoint: URL accepting review requests
            timeout: Request timeout in seconds
            session: Optional preconfigured requests session
        """
        if not endpoint:
            raise ValueError("Analysis endpoint is required")
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create requests session with default headers."""
        session = requests.Session()
        session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json',
            'User-Agent': 'AutoCodeReview/1.0',
        })
        return session

    def submit(self, diff_chunk: str, credential: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = {'diff_chunk': diff_chunk, 'options': dict(options or {})}

        try:
            response = self.session.post(
                self.endpoint,
                json=payload,
                headers={'Authorization': f'Bearer {credential}'},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise AnalysisTransientFailure(f"Analysis request timed out: {e}") from e
        except requests.ConnectionError as e:
            raise AnalysisTransientFailure(f"Analysis service unreachable: {e}") from e
        except requests.RequestException as e:
            raise AnalysisTransientFailure(f"Analysis request failed: {e}") from e

        if response.status_code in self.AUTH_STATUSES:
            raise AnalysisAuthFailure(f"Analysis service rejected the credential ({response.status_code})")
        if response.status_code in self.TRANSIENT_STATUSES or response.status_code >= 500:
            raise AnalysisTransientFailure(f"Analysis service returned {response.status_code}")
        if not response.ok:
            raise MalformedResponse(f"Analysis service returned {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Analysis response is not JSON: {e}") from e


class OpenAIAnalysisTransport(AnalysisTransport):
    """
    Analysis backed by an OpenAI chat-completions model.

    The model is asked for the same ``{"findings": [...]}`` object the HTTP
    service returns, so both transports feed the same validation path.
    """

    def __init__(self, model: str = "gpt-4o-mini", timeout: float = 60, base_url: Optional[str] = None, client_factory=None):
        """
        Initialize OpenAI transport.

        Args:
            model: Chat model name
            timeout: Request timeout in seconds
            base_url: Optional OpenAI-compatible endpoint
            client_factory: Callable building a client from an API key (tests)
        """
        self.model = model
        self.timeout = timeout
        self.base_url = base_url
        self._client_factory = client_factory or self._default_client
        self._clients: Dict[str, Any] = {}

    def _default_client(self, credential: str):
        from openai import OpenAI

        # Retries are handled by the review client.
        return OpenAI(api_key=credential, base_url=self.base_url, timeout=self.timeout, max_retries=0)

    def _client_for(self, credential: str):
        if credential not in self._clients:
            self._clients[credential] = self._client_factory(credential)
        return self._clients[credential]

    def submit(self, diff_chunk: str, credential: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        import openai

        options = options or {}
        instructions = REVIEW_SYSTEM_PROMPT
        if options.get('max_findings'):
            instructions += f"\nReport at most {options['max_findings']} findings."

        client = self._client_for(credential)
        try:
            resp = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": f"```diff\n{diff_chunk}\n```"},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AnalysisAuthFailure(f"OpenAI rejected the credential: {e.__class__.__name__}") from e
        except (openai.APITimeoutError, openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
            raise AnalysisTransientFailure(f"OpenAI request failed: {e.__class__.__name__}") from e
        except openai.APIStatusError as e:
            raise MalformedResponse(f"OpenAI returned {e.status_code}") from e

        content = resp.choices[0].message.content or ""
        logger.debug(f"Model returned {len(content)} chars")
        try:
            return json.loads(content)
        except ValueError as e:
            raise MalformedResponse(f"Model output is not JSON: {e}") from e
