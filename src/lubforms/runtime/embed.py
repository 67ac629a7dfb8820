"""
Registry of mounted form sessions.

Embedding pages declare forms on containers through ``data-lub-*``
attributes; the registry turns each container into a FormSession keyed by
container id (or form id when the container has none). Sessions are
created and destroyed only through the registry's explicit entry points.

Container attributes:
    data-lub-form-id      Form to mount (required)
    data-lub-base-url     API base URL
    data-lub-class        Extra CSS class for the rendered form
    data-lub-on-success   Name of a success callback in the namespace
    data-lub-on-error     Name of an error callback in the namespace
    data-lub-mounted      Set to "true" once mounted
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, MutableMapping
from typing import Any

from .client import LubFormsClient
from .logging import get_session_logger
from .session import FormSession

logger = get_session_logger()

ATTR_FORM_ID = "data-lub-form-id"
ATTR_BASE_URL = "data-lub-base-url"
ATTR_CLASS = "data-lub-class"
ATTR_ON_SUCCESS = "data-lub-on-success"
ATTR_ON_ERROR = "data-lub-on-error"
ATTR_MOUNTED = "data-lub-mounted"


class SessionRegistry:
    """Process-wide table of live sessions keyed by container identity."""

    def __init__(self) -> None:
        self._sessions: dict[str, FormSession] = {}
        # Extra CSS class per container, for renderers
        self.class_names: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def get(self, key: str) -> FormSession | None:
        return self._sessions.get(key)

    def create(
        self,
        form_id: str,
        container_id: str | None = None,
        *,
        base_url: str = "",
        client: LubFormsClient | None = None,
        **callbacks: Any,
    ) -> FormSession:
        """
        Create a session for a container, destroying any session already
        mounted there.

        Args:
            form_id: Form to mount
            container_id: Container identity; defaults to ``form_id``
            base_url: API base URL used when no client is given
            client: Optional shared API client
            **callbacks: on_success / on_error / on_validation_error / on_step_change

        Returns:
            The new (still loading) session
        """
        key = container_id or form_id
        self.destroy(key)
        session = FormSession(form_id, client, base_url=base_url, **callbacks)
        self._sessions[key] = session
        logger.debug("Mounted form %s on %s", form_id, key)
        return session

    def destroy(self, key: str) -> bool:
        """Destroy the session mounted on a container. Returns False if none."""
        session = self._sessions.pop(key, None)
        self.class_names.pop(key, None)
        if session is None:
            return False
        session.destroy()
        return True

    def destroy_all(self) -> None:
        for key in list(self._sessions):
            self.destroy(key)

    def auto_mount(
        self,
        containers: Iterable[MutableMapping[str, str]],
        namespace: Mapping[str, Any] | None = None,
        *,
        client: LubFormsClient | None = None,
    ) -> list[FormSession]:
        """
        Mount a session for every container declaring a form id.

        Containers already flagged as mounted are skipped; mounted ones are
        flagged. Callback names are looked up in ``namespace`` and ignored
        unless they resolve to callables.

        Returns:
            Sessions created by this call
        """
        namespace = namespace or {}
        created: list[FormSession] = []

        for container in containers:
            form_id = container.get(ATTR_FORM_ID)
            if not form_id:
                continue
            if container.get(ATTR_MOUNTED) == "true":
                continue

            callbacks: dict[str, Callable[..., Any]] = {}
            on_success = _resolve_callback(namespace, container.get(ATTR_ON_SUCCESS))
            if on_success is not None:
                callbacks["on_success"] = on_success
            on_error = _resolve_callback(namespace, container.get(ATTR_ON_ERROR))
            if on_error is not None:
                callbacks["on_error"] = on_error

            key = container.get("id") or form_id
            session = self.create(
                form_id,
                key,
                base_url=container.get(ATTR_BASE_URL, ""),
                client=client,
                **callbacks,
            )
            if container.get(ATTR_CLASS):
                self.class_names[key] = container[ATTR_CLASS]
            container[ATTR_MOUNTED] = "true"
            created.append(session)

        return created


def _resolve_callback(namespace: Mapping[str, Any], name: str | None) -> Callable[..., Any] | None:
    if not name:
        return None
    candidate = namespace.get(name)
    if callable(candidate):
        return candidate
    logger.warning("Callback %r is not a callable in the namespace, ignoring", name)
    return None


_registry = SessionRegistry()


def get_registry() -> SessionRegistry:
    """The process-wide session registry."""
    return _registry
