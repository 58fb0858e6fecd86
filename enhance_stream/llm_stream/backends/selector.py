"""
Backend Selector

Registry of generation backends plus the selection policy.

Selection modes:
    explicit   get(name) returns the registered backend, no probing.
    automatic  resolve() checks the default backend, then each fallback in
               configured order; the first available one wins. If none is
               available and the mock backend is enabled it is used as the
               last resort, otherwise BackendUnavailableError.

Selection is a pure function of the configuration and the availability results:
every name is checked at most once, there are no retries and no randomness.
"""

from collections.abc import Sequence

from enhance_stream.core.config.constants import BackendName, Stage
from enhance_stream.core.exceptions import BackendUnavailableError
from enhance_stream.core.logging import get_logger, log_stage
from enhance_stream.llm_stream.backends.base_backend import BackendConfig, BaseBackend

logger = get_logger(__name__)


class BackendSelector:
    """
    Registry and selection policy for generation backends.

    Usage:
        selector = BackendSelector(default="gemini", fallbacks=["openai", "deepseek"])
        selector.register("gemini", GeminiBackend, config)

        backend = await selector.resolve()            # automatic
        backend = selector.get(session.backend_name)  # explicit
    """

    def __init__(
        self,
        default: str | None = None,
        fallbacks: Sequence[str] = (),
        last_resort: str | None = None,
    ):
        self.default = default
        self.fallbacks = list(fallbacks)
        self.last_resort = last_resort
        self._backends: dict[str, BaseBackend] = {}
        self._configs: dict[str, BackendConfig] = {}
        self._classes: dict[str, type[BaseBackend]] = {}

    def register(self, name: str, backend_class: type[BaseBackend], config: BackendConfig) -> None:
        """Register a backend class; it is instantiated on first use."""
        self._classes[name] = backend_class
        self._configs[name] = config
        self._backends.pop(name, None)

        logger.info(f"Registered backend: {name}", stage=Stage.BACKEND_SELECTION)

    def register_instance(self, backend: BaseBackend) -> None:
        """Register an already constructed backend under its own name."""
        self._classes[backend.name] = type(backend)
        self._configs[backend.name] = backend.config
        self._backends[backend.name] = backend

        logger.info(f"Registered backend: {backend.name}", stage=Stage.BACKEND_SELECTION)

    def is_registered(self, name: str) -> bool:
        return name in self._classes

    def list_backends(self) -> list[str]:
        return list(self._classes)

    def get(self, name: str) -> BaseBackend:
        """
        Explicit lookup.

        Raises:
            BackendUnavailableError: If no backend is registered under ``name``
        """
        if name not in self._classes:
            raise BackendUnavailableError(
                f"Unknown generation backend: {name}",
                details={"backend": name, "registered": self.list_backends()},
            )

        if name not in self._backends:
            self._backends[name] = self._classes[name](self._configs[name])

        return self._backends[name]

    async def resolve(self, name: str | None = None) -> BaseBackend:
        """
        Resolve a backend, explicitly by name or automatically.

        Raises:
            BackendUnavailableError: If nothing resolves
        """
        if name:
            return self.get(name)

        checked: set[str] = set()
        for candidate in self._candidates():
            if candidate in checked:
                continue
            checked.add(candidate)

            backend = await self._check(candidate)
            if backend is not None:
                if candidate != self.default:
                    log_stage(
                        logger,
                        Stage.BACKEND_SELECTION,
                        "Using fallback backend",
                        level="warning",
                        backend=candidate,
                        default=self.default,
                    )
                return backend

        if self.last_resort and self.is_registered(self.last_resort):
            log_stage(
                logger,
                Stage.BACKEND_SELECTION,
                "No backend available, using last resort",
                level="warning",
                backend=self.last_resort,
            )
            return self.get(self.last_resort)

        raise BackendUnavailableError(
            "No generation backend available",
            details={"default": self.default, "fallbacks": self.fallbacks},
        )

    def _candidates(self) -> list[str]:
        names = [self.default] if self.default else []
        return names + self.fallbacks

    async def _check(self, name: str) -> BaseBackend | None:
        if not self.is_registered(name):
            logger.debug("Backend not registered", stage=Stage.BACKEND_SELECTION, backend=name)
            return None

        backend = self.get(name)
        try:
            available = await backend.is_available()
        except Exception as e:
            logger.warning(
                "Backend availability check raised",
                stage=Stage.BACKEND_SELECTION,
                backend=name,
                error=str(e),
            )
            return None

        if not available:
            logger.info("Backend unavailable", stage=Stage.BACKEND_SELECTION, backend=name)
            return None
        return backend


def create_backend_selector(settings) -> BackendSelector:
    """Build an empty selector wired to the configured selection order."""
    return BackendSelector(
        default=settings.llm.DEFAULT_LLM_BACKEND,
        fallbacks=settings.llm.fallback_backends,
        last_resort=BackendName.MOCK.value if settings.mock_backend_enabled else None,
    )
