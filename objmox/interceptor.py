"""Factory indirection used to intercept construction of collaborators.

Code under test obtains instances through a :class:`FactoryRegistry` (or a
:class:`Provider` bound to one) instead of calling the class directly. Tests
install an :class:`InterceptionRule` to substitute the factory for the
lifetime of a test; restoring the rule returns the class to ordinary
construction.
"""

from __future__ import annotations

import logging
import typing as t

from .errors import InterceptionError

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    import types

    from .doubles import MockHandle, PartialMock

logger = logging.getLogger(__name__)

T = t.TypeVar("T")
Factory = t.Callable[..., object]


class FactoryRegistry:
    """Map classes to the factories used to construct them.

    Overrides stack per class; the most recently installed factory wins and
    removing it reveals the previous one.
    """

    def __init__(self) -> None:
        self._overrides: dict[type, list[Factory]] = {}

    def create(self, cls: type[T], /, *args: object, **kwargs: object) -> T:
        """Construct *cls* through the active override, if any."""
        stack = self._overrides.get(cls)
        if stack:
            return t.cast("T", stack[-1](*args, **kwargs))
        return cls(*args, **kwargs)

    def provider(self, cls: type[T]) -> Provider[T]:
        """Return a :class:`Provider` for *cls* bound to this registry."""
        return Provider(cls, self)

    def is_intercepted(self, cls: type) -> bool:
        """Return ``True`` when construction of *cls* is overridden."""
        return bool(self._overrides.get(cls))

    def install(self, cls: type, factory: Factory) -> None:
        """Route construction of *cls* through *factory*."""
        stack = self._overrides.setdefault(cls, [])
        if any(existing is factory for existing in stack):
            msg = f"factory {factory!r} is already installed for {cls.__qualname__}"
            raise InterceptionError(msg)
        stack.append(factory)

    def uninstall(self, cls: type, factory: Factory) -> None:
        """Remove *factory* from the overrides of *cls*."""
        stack = self._overrides.get(cls, [])
        for index, existing in enumerate(stack):
            if existing is factory:
                del stack[index]
                break
        else:
            msg = f"factory {factory!r} is not installed for {cls.__qualname__}"
            raise InterceptionError(msg)
        if not stack:
            del self._overrides[cls]

    def reset(self) -> None:
        """Drop every override."""
        self._overrides.clear()


default_registry = FactoryRegistry()


def create(cls: type[T], /, *args: object, **kwargs: object) -> T:
    """Construct *cls* through :data:`default_registry`."""
    return default_registry.create(cls, *args, **kwargs)


class Provider(t.Generic[T]):
    """Callable that constructs ``cls`` through a registry.

    When no registry is given the module-level :data:`default_registry` is
    consulted at call time.
    """

    __slots__ = ("cls", "registry")

    def __init__(self, cls: type[T], registry: FactoryRegistry | None = None) -> None:
        self.cls = cls
        self.registry = registry

    def __call__(self, *args: object, **kwargs: object) -> T:
        """Return a new instance of ``cls``."""
        registry = self.registry if self.registry is not None else default_registry
        return registry.create(self.cls, *args, **kwargs)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Provider({self.cls.__qualname__})"


class NewInstanceFactory:
    """Build the real instance, wrap it and hand the wrapper to a configurator."""

    def __init__(
        self,
        cls: type,
        wrap: t.Callable[[object, str], PartialMock],
        configurator: t.Callable[[PartialMock], object],
    ) -> None:
        self.cls = cls
        self._wrap = wrap
        self._configurator = configurator
        self.instances: list[PartialMock] = []

    def __call__(self, *args: object, **kwargs: object) -> PartialMock:
        """Construct, wrap and configure one instance."""
        real = self.cls(*args, **kwargs)
        label = f"{self.cls.__name__}#{len(self.instances) + 1}"
        partial = self._wrap(real, label)
        self.instances.append(partial)
        self._configurator(partial)
        return partial

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"NewInstanceFactory({self.cls.__qualname__})"


class SharedHandleFactory:
    """Return the same pre-configured handle for every construction."""

    def __init__(self, handle: MockHandle) -> None:
        self.handle = handle

    def __call__(self, *args: object, **kwargs: object) -> MockHandle:
        """Ignore the constructor arguments and return ``handle``."""
        return self.handle

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"SharedHandleFactory({self.handle.mox_label!r})"


class InterceptionRule:
    """A scoped substitution of a class factory.

    Rules are installed on creation by the controller and restored either
    explicitly, by leaving a ``with`` block, or at controller teardown.
    Restoring an inactive rule is a no-op.
    """

    def __init__(
        self, registry: FactoryRegistry, cls: type, factory: Factory
    ) -> None:
        self.registry = registry
        self.cls = cls
        self.factory = factory
        self._active = False

    @property
    def active(self) -> bool:
        """Return ``True`` while the substitution is in effect."""
        return self._active

    @property
    def instances(self) -> list[PartialMock]:
        """Return the partial mocks created through this rule so far."""
        return list(getattr(self.factory, "instances", ()))

    def install(self) -> InterceptionRule:
        """Start routing construction of ``cls`` through ``factory``."""
        if self._active:
            msg = f"interception of {self.cls.__qualname__} is already active"
            raise InterceptionError(msg)
        self.registry.install(self.cls, self.factory)
        self._active = True
        logger.debug("Intercepting construction of %s", self.cls.__qualname__)
        return self

    def restore(self) -> None:
        """Return ``cls`` to its previous construction behaviour."""
        if not self._active:
            return
        self._active = False
        self.registry.uninstall(self.cls, self.factory)
        logger.debug("Restored construction of %s", self.cls.__qualname__)

    def __enter__(self) -> InterceptionRule:
        """Return the already installed rule."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Restore the rule regardless of how the block exited."""
        self.restore()

    def __repr__(self) -> str:
        """Return a debug representation."""
        state = "active" if self._active else "restored"
        return f"<InterceptionRule {self.cls.__qualname__} {state}>"


__all__ = [
    "FactoryRegistry",
    "InterceptionRule",
    "NewInstanceFactory",
    "Provider",
    "SharedHandleFactory",
    "create",
    "default_registry",
]
