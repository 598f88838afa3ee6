"""KMS handle construction for the two SDK generations.

The legacy (v1) strategy builds a plain boto3 client bound to the region of
the key URI prefix and relies on the client's own transport timeout. The
modern (v2) strategy loads the default AWS configuration under a time budget,
optionally layered with explicit load options, client options and
credentials read from a file while the client is built, and bounds every KMS round trip by the same budget.

Both memoize the handle: concurrent first callers block on a lock and at most
one handle is ever constructed.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import TYPE_CHECKING, Any, Callable, Final

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from .aead import AwsKmsAead, AwsKmsV2Aead
from .credentials import AccessKeyCredentials
from .exceptions import KmsHandleError, RegionError
from .uri import get_region

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .options import EncryptionContextName

DEFAULT_TIMEOUT: Final[float] = 5.0

log = structlog.get_logger(__name__)


def new_legacy_kms(uri_prefix: str, credentials: AccessKeyCredentials | None = None) -> Any:
    """Build a boto3 KMS client for the region named in ``uri_prefix``"""
    region = get_region(uri_prefix)
    session_kwargs = credentials.session_kwargs() if credentials is not None else {}
    try:
        session = boto3.session.Session(region_name=region, **session_kwargs)
        return session.client("kms")
    except BotoCoreError as exc:
        raise KmsHandleError(f"creating KMS client: {exc}") from exc


class DeadlineRunner:
    """Runs each blocking call on its own daemon thread and waits at most ``timeout``.

    The deadline starts when the call starts. A call that overruns is abandoned
    by its caller and finishes in the background; it holds no slot any other
    call waits on.
    """

    def run(self, fn: Callable[..., Any], timeout: float, /, *args: Any, **kwargs: Any) -> Any:
        future: Future[Any] = Future()

        def target() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = fn(*args, **kwargs)
            except BaseException as exc:  # handed to the waiting caller
                future.set_exception(exc)
            else:
                future.set_result(result)

        name = getattr(fn, "__name__", "call")
        threading.Thread(target=target, name=f"dg-awskms-{name}", daemon=True).start()
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            raise TimeoutError(f"{name} timed out after {timeout}s") from None


class HandleStrategy(ABC):
    generation: str

    def __init__(self, uri_prefix: str, kms: Any = None) -> None:
        self._uri_prefix = uri_prefix
        self._kms = kms
        self._lock = threading.Lock()

    @property
    def kms(self) -> Any:
        """The explicitly supplied or already constructed handle, if any"""
        return self._kms

    def handle(self) -> Any:
        if self._kms is None:
            with self._lock:
                if self._kms is None:
                    self._kms = self._construct()
                    log.info("kms.handle.constructed", generation=self.generation, uri_prefix=self._uri_prefix)
        return self._kms

    @abstractmethod
    def build_aead(self, key_arn: str, encryption_context_name: EncryptionContextName) -> AwsKmsAead:
        raise NotImplementedError

    @abstractmethod
    def _construct(self) -> Any:
        raise NotImplementedError


class LegacyHandleStrategy(HandleStrategy):
    generation = "v1"

    def build_aead(self, key_arn: str, encryption_context_name: EncryptionContextName) -> AwsKmsAead:
        return AwsKmsAead(key_arn, self.handle(), encryption_context_name)

    def _construct(self) -> Any:
        return new_legacy_kms(self._uri_prefix)


class ModernHandleStrategy(HandleStrategy):
    """Configured through ``V2ClientOption``s while the client is being built"""

    generation = "v2"

    def __init__(self, uri_prefix: str, kms: Any = None) -> None:
        super().__init__(uri_prefix, kms)
        self.timeout: float | None = None
        self.load_options: dict[str, Any] | None = None
        self.kms_options: dict[str, Any] | None = None
        self.credentials: AccessKeyCredentials | None = None
        self._runner = DeadlineRunner()

    @property
    def effective_timeout(self) -> float:
        return self.timeout or DEFAULT_TIMEOUT

    def set_kms(self, kms: Any) -> None:
        self._kms = kms

    def build_aead(self, key_arn: str, encryption_context_name: EncryptionContextName) -> AwsKmsAead:
        return AwsKmsV2Aead(
            key_arn,
            self.handle(),
            encryption_context_name,
            timeout=self.effective_timeout,
            runner=self._runner,
        )

    def _construct(self) -> Any:
        timeout = self.effective_timeout
        try:
            return self._runner.run(self._load_kms, timeout)
        except TimeoutError as exc:
            raise KmsHandleError(f"loading AWS default config: {exc}") from exc
        except BotoCoreError as exc:
            raise KmsHandleError(f"loading AWS default config: {exc}") from exc

    def _load_kms(self) -> Any:
        session_kwargs = dict(self.load_options or {})
        if self.credentials is not None:
            session_kwargs.update(self.credentials.session_kwargs())
        if "region_name" not in session_kwargs:
            session_kwargs["region_name"] = self._prefix_region()
        session = boto3.session.Session(**session_kwargs)
        if session.get_credentials() is None:
            log.warning("kms.credentials.not_found", generation=self.generation)

        client_kwargs = dict(self.kms_options or {})
        timeouts = Config(connect_timeout=self.effective_timeout, read_timeout=self.effective_timeout)
        user_config = client_kwargs.pop("config", None)
        client_kwargs["config"] = timeouts.merge(user_config) if user_config is not None else timeouts
        return session.client("kms", **client_kwargs)

    def _prefix_region(self) -> str | None:
        try:
            return get_region(self._uri_prefix)
        except RegionError:
            return None


__all__ = [
    "DEFAULT_TIMEOUT",
    "DeadlineRunner",
    "HandleStrategy",
    "LegacyHandleStrategy",
    "ModernHandleStrategy",
    "new_legacy_kms",
]
