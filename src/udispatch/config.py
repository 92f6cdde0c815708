"""Dispatcher settings."""
from collections.abc import Mapping
from os import environ as os_environ

from attrs import fields, frozen

from .binding import make_string_converter


@frozen
class DispatchSettings:
    """Immutable after creation. Override what you need::

        settings = DispatchSettings(handler_timeout=5.0)
    """

    #: Seconds; `None` disables the timeout.
    handler_timeout: float | None = None
    #: Run sync handlers in the threadpool instead of on the event loop.
    run_sync_in_threadpool: bool = True
    #: Serve `HEAD` from the `GET` route when no `HEAD` route exists.
    head_falls_back_to_get: bool = True
    #: See `RouteTable`.
    literal_priority: bool = True
    #: Put handler exception messages into 500 bodies. Development only.
    expose_error_details: bool = False
    log_level: str = "info"

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, prefix: str = "UDISPATCH_"
    ) -> "DispatchSettings":
        """Read settings from `<prefix><FIELD_NAME>` variables.

        Unset variables keep their defaults. `none` (any case) clears an
        optional setting.
        """
        if environ is None:
            environ = os_environ
        converter = make_string_converter()
        kwargs = {}
        for a in fields(cls):
            key = f"{prefix}{a.name.upper()}"
            if key not in environ:
                continue
            raw = environ[key]
            if a.default is None and raw.strip().lower() in ("", "none"):
                kwargs[a.name] = None
            else:
                kwargs[a.name] = converter.structure(raw, a.type)
        return cls(**kwargs)
