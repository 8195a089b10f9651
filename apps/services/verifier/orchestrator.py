"""
verifier/orchestrator.py

Composes the verification pipeline for one request:

    rate gate -> normalize/validate -> cache -> browser -> form session
              -> parse -> cache store

Rejections (rate limit, pattern) happen before any resource is touched.
Automation errors propagate after the session has released its context.
Nothing is retried and only parsed results are cached.
"""

import logging
import time
import uuid

from libs.core.exceptions import RateLimitedError, VerifierError
from libs.core.logging_config import log_request_end, log_request_start
from libs.core.models import VerificationOutcome

from apps.services.verifier.browser_manager import BrowserLifecycleManager
from apps.services.verifier.code_normalizer import CodePattern, normalize_code
from apps.services.verifier.form_session import FormAutomationSession
from apps.services.verifier.rate_limiter import RateGate
from apps.services.verifier.response_cache import ResultStore
from apps.services.verifier.result_parser import parse_fragments

logger = logging.getLogger(__name__)


class VerificationOrchestrator:
    """Per-request composition of gate, cache, browser and session."""

    def __init__(
        self,
        *,
        rate_gate: RateGate,
        cache: ResultStore,
        browser_manager: BrowserLifecycleManager,
        session: FormAutomationSession,
        pattern: CodePattern,
    ):
        self.rate_gate = rate_gate
        self.cache = cache
        self.browser_manager = browser_manager
        self.session = session
        self.pattern = pattern

    async def verify(self, raw_code, client_key: str) -> VerificationOutcome:
        """
        Verify one code for one client.

        Raises:
            RateLimitedError: client is inside its rate interval
            PatternError: normalized code does not match the pattern
            BrowserLaunchError: shared browser could not be started
            UpstreamAutomationError: the site could not be driven to a result
        """
        decision = self.rate_gate.admit(client_key)
        if not decision.allowed:
            raise RateLimitedError(client_key, decision.retry_after_ms)

        code = self.pattern.validate(normalize_code(raw_code))

        cached = self.cache.get(code)
        if cached is not None:
            logger.info(f"[Verify] Cache hit: {code}")
            return VerificationOutcome(code=code, result=cached, cached=True)

        trace_id = uuid.uuid4().hex[:8]
        start = time.monotonic()
        log_request_start(logger, trace_id, code, client_key)
        try:
            browser = await self.browser_manager.acquire()
            fragments = await self.session.run(browser, code)
        except VerifierError as e:
            log_request_end(logger, trace_id, f"FAILED ({type(e).__name__})", (time.monotonic() - start) * 1000)
            raise

        result = parse_fragments(fragments)
        self.cache.put(code, result)
        log_request_end(
            logger,
            trace_id,
            f"OK valid={result.valid} active={result.active} fragments={len(fragments)}",
            (time.monotonic() - start) * 1000,
        )
        return VerificationOutcome(code=code, result=result, cached=False)
