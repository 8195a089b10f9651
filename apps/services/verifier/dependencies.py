"""
Verifier Dependencies Module

Singleton instances with lazy initialization for the verifier service.
Routers call the getters; tests swap instances with the setters and
reset_all().
"""

import logging
from typing import Optional

from libs.core.config import Settings, get_settings

from apps.services.verifier.browser_manager import BrowserLifecycleManager
from apps.services.verifier.code_normalizer import CodePattern
from apps.services.verifier.form_session import FormAutomationSession, SessionTimeouts
from apps.services.verifier.orchestrator import VerificationOrchestrator
from apps.services.verifier.popup_dismissal import DismissalConfig, PopupDismissalEngine
from apps.services.verifier.rate_limiter import InMemoryRateLimiter, RateGate
from apps.services.verifier.response_cache import InMemoryResultCache, ResultStore
from apps.services.verifier.page_selectors import SelectorCatalog, load_selector_catalog

logger = logging.getLogger(__name__)

# =============================================================================
# Private Singleton Storage
# =============================================================================

_selectors: Optional[SelectorCatalog] = None
_browser_manager: Optional[BrowserLifecycleManager] = None
_form_session: Optional[FormAutomationSession] = None
_result_cache: Optional[ResultStore] = None
_rate_gate: Optional[RateGate] = None
_orchestrator: Optional[VerificationOrchestrator] = None


def _settings() -> Settings:
    return get_settings()


# =============================================================================
# Page automation
# =============================================================================


def get_selectors() -> SelectorCatalog:
    """Get the selector catalogue (defaults + optional YAML overrides)."""
    global _selectors
    if _selectors is None:
        _selectors = load_selector_catalog(_settings().selectors_file)
    return _selectors


def get_browser_manager() -> BrowserLifecycleManager:
    """Get the shared browser lifecycle manager."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserLifecycleManager(headless=_settings().browser.headless)
        logger.info("[Dependencies] Browser manager initialized")
    return _browser_manager


def get_form_session() -> FormAutomationSession:
    """Get the form automation session driver."""
    global _form_session
    if _form_session is None:
        settings = _settings()
        selectors = get_selectors()
        _form_session = FormAutomationSession(
            site_url=settings.site_url,
            selectors=selectors,
            popup_engine=PopupDismissalEngine(
                selectors,
                DismissalConfig(budget_ms=settings.browser.popup_budget_ms),
            ),
            timeouts=SessionTimeouts(
                navigation_ms=settings.browser.navigation_timeout_ms,
                field_ms=settings.browser.field_timeout_ms,
                submit_ms=settings.browser.submit_timeout_ms,
                result_ms=settings.browser.result_timeout_ms,
            ),
            user_agent=settings.browser.user_agent,
        )
        logger.info(f"[Dependencies] Form session initialized (site={settings.site_url})")
    return _form_session


# =============================================================================
# Shared state
# =============================================================================


def get_result_cache() -> ResultStore:
    """Get the verification result cache."""
    global _result_cache
    if _result_cache is None:
        _result_cache = InMemoryResultCache(ttl_seconds=_settings().cache_ttl_seconds)
        logger.info("[Dependencies] Result cache initialized")
    return _result_cache


def get_rate_gate() -> RateGate:
    """Get the per-client rate gate."""
    global _rate_gate
    if _rate_gate is None:
        _rate_gate = InMemoryRateLimiter(interval_ms=_settings().rate_limit_interval_ms)
        logger.info("[Dependencies] Rate gate initialized")
    return _rate_gate


# =============================================================================
# Orchestrator
# =============================================================================


def get_orchestrator() -> VerificationOrchestrator:
    """Get the verification orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        settings = _settings()
        _orchestrator = VerificationOrchestrator(
            rate_gate=get_rate_gate(),
            cache=get_result_cache(),
            browser_manager=get_browser_manager(),
            session=get_form_session(),
            pattern=CodePattern(settings.code_min_digits, settings.code_max_digits),
        )
        logger.info(
            f"[Dependencies] Orchestrator initialized "
            f"(digits={settings.code_min_digits}..{settings.code_max_digits})"
        )
    return _orchestrator


def set_orchestrator(orchestrator: Optional[VerificationOrchestrator]) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def set_browser_manager(manager: Optional[BrowserLifecycleManager]) -> None:
    global _browser_manager
    _browser_manager = manager


def set_form_session(session: Optional[FormAutomationSession]) -> None:
    global _form_session
    _form_session = session


# =============================================================================
# Lifecycle
# =============================================================================


def initialize_all() -> None:
    """Build every singleton in dependency order (browser launch stays lazy)."""
    get_orchestrator()


def reset_all() -> None:
    """Drop all singletons. Does not close the browser; see lifespan shutdown."""
    global _selectors, _browser_manager, _form_session, _result_cache, _rate_gate, _orchestrator
    _selectors = None
    _browser_manager = None
    _form_session = None
    _result_cache = None
    _rate_gate = None
    _orchestrator = None
