import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .models import GatewayStatus
from .settings import CHECKOUT_SCRIPT_URL, SCRIPT_LOAD_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class LoaderState(str, Enum):
    NOT_STARTED = "not_started"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ScriptHost(Protocol):
    """The page the checkout script lives in."""

    def provider_present(self) -> bool:
        ...

    def inject_script(self, src: str, on_load: Callable[[], None], on_error: Callable[[], None]) -> Any:
        ...

    def remove_script(self, element: Any) -> None:
        ...


class GatewayLoader:
    """
    Makes sure the provider's checkout script is loaded, once.

    Concurrent callers share a single in-flight load; the handle is set
    before the first await and cleared only when the load settles.
    """

    def __init__(
        self,
        host: ScriptHost,
        script_url: str = CHECKOUT_SCRIPT_URL,
        timeout: float = SCRIPT_LOAD_TIMEOUT_SECONDS,
    ):
        self.host = host
        self.script_url = script_url
        self.timeout = timeout
        self.state = LoaderState.NOT_STARTED
        self._pending: Optional[asyncio.Future] = None

    @property
    def ready(self) -> bool:
        return self.state is LoaderState.READY

    async def ensure_ready(self) -> bool:
        if self.host.provider_present():
            self.state = LoaderState.READY
            return True

        if self._pending is None:
            self.state = LoaderState.LOADING
            self._pending = asyncio.ensure_future(self._load())
        # shield: one impatient caller must not cancel everybody's load
        return await asyncio.shield(self._pending)

    async def _load(self) -> bool:
        loop = asyncio.get_running_loop()
        outcome = loop.create_future()

        def settle(ok: bool):
            if not outcome.done():
                outcome.set_result(ok)

        element = None
        try:
            element = self.host.inject_script(self.script_url, lambda: settle(True), lambda: settle(False))
            ok = await asyncio.wait_for(outcome, self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Checkout script timed out after %.1fs: %s", self.timeout, self.script_url)
            ok = False
        except Exception:
            logger.exception("Checkout script injection failed: %s", self.script_url)
            ok = False

        if ok:
            self.state = LoaderState.READY
        else:
            self.state = LoaderState.FAILED
            if element is not None:
                try:
                    self.host.remove_script(element)
                except Exception:
                    logger.exception("Could not remove failed checkout script element")
        self._pending = None
        return ok


async def check_gateway(loader: GatewayLoader, key_id: str) -> GatewayStatus:
    if not await loader.ensure_ready():
        return GatewayStatus(available=False, error="Checkout script failed to load")
    if not key_id:
        return GatewayStatus(available=False, error="Payment gateway key not configured")
    return GatewayStatus(available=True)
