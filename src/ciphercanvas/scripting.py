"""Runtime configuration store and the embedded Lua scripting sandbox.

Scripts see a global ``ciphercanvas`` table::

    local cfg = ciphercanvas.get_config()
    ciphercanvas.set_config("format", "png")
    ciphercanvas.set_config("size", 1024)
    ciphercanvas.save_image("qrcode", svg_text)

Every save exports with a snapshot of the configuration taken when the save
starts, so later ``set_config`` calls never affect a save that is in flight.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from lupa import LuaError, LuaRuntime

from .errors import CipherCanvasError, ScriptError
from .export import ExportedArtifact, export_image

logger = logging.getLogger(__name__)

U32_MAX = 2**32 - 1

_REMOVED_GLOBALS = ("os", "io", "package", "require", "dofile", "loadfile", "debug", "python")


@dataclass(frozen=True)
class RuntimeConfig:
    size: int = 512
    format: str = "svg"
    foreground: str = "#ffffff"
    background: str = "#000000"

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_u32(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U32_MAX


_VALIDATORS: Dict[str, Callable[[Any], bool]] = {
    "size": _is_u32,
    "format": lambda value: isinstance(value, str),
    "foreground": lambda value: isinstance(value, str),
    "background": lambda value: isinstance(value, str),
}


class RuntimeConfigStore:
    """Mutable configuration shared by the calls of one scripting session.

    The stored :class:`RuntimeConfig` is immutable and replaced on every
    change, so a snapshot is simply the current instance.
    """

    def __init__(self, initial: Optional[RuntimeConfig] = None) -> None:
        self._lock = threading.Lock()
        self._config = initial if initial is not None else RuntimeConfig()

    def snapshot(self) -> RuntimeConfig:
        with self._lock:
            return self._config

    def get(self) -> Dict[str, Any]:
        return self.snapshot().as_dict()

    def set(self, key: str, value: Any) -> None:
        """Update ``key``.

        Unknown keys raise :class:`ScriptError`. A value of the wrong type for
        a known key is ignored.
        """
        validator = _VALIDATORS.get(key)
        if validator is None:
            raise ScriptError(f"Unknown config key: {key}")
        if not validator(value):
            logger.debug("Ignoring value %r of type %s for config key %r", value, type(value).__name__, key)
            return
        with self._lock:
            self._config = replace(self._config, **{key: value})
        logger.info("Config %s set to %r", key, value)

    def save(self, output_path: Union[str, Path], image: str) -> ExportedArtifact:
        return save_with(self.snapshot(), output_path, image)


def save_with(config: RuntimeConfig, output_path: Union[str, Path], image: str) -> ExportedArtifact:
    """Export ``image`` using the format and size of ``config``; existing files are replaced."""
    return export_image(image, config.format, config.size, Path(output_path), overwrite=True)


class ScriptingSession:
    """One scripting session: a configuration store plus a worker pool for saves."""

    def __init__(
        self,
        store: Optional[RuntimeConfigStore] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.store = store if store is not None else RuntimeConfigStore()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ciphercanvas-save")

    def __enter__(self) -> "ScriptingSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def get_config(self) -> Dict[str, Any]:
        return self.store.get()

    def set_config(self, key: str, value: Any) -> None:
        self.store.set(key, value)

    def submit_save(self, output_path: Union[str, Path], svg_text: str) -> "Future[ExportedArtifact]":
        """Snapshot the configuration and start the export on the worker pool."""
        config = self.store.snapshot()
        try:
            return self._executor.submit(save_with, config, output_path, svg_text)
        except RuntimeError as exc:
            raise ScriptError(f"JoinError: {exc}") from exc

    def save_image(self, output_path: Union[str, Path], svg_text: str) -> None:
        future = self.submit_save(output_path, svg_text)
        _unwrap(future)

    async def save_image_async(self, output_path: Union[str, Path], svg_text: str) -> None:
        config = self.store.snapshot()
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, save_with, config, output_path, svg_text)
        except (CipherCanvasError, OSError, ValueError) as exc:
            raise ScriptError(f"SaveError: {exc}") from exc
        except Exception as exc:
            raise ScriptError(f"JoinError: {exc}") from exc


def _unwrap(future: "Future[ExportedArtifact]") -> ExportedArtifact:
    try:
        return future.result()
    except (CipherCanvasError, OSError, ValueError) as exc:
        raise ScriptError(f"SaveError: {exc}") from exc
    except Exception as exc:
        raise ScriptError(f"JoinError: {exc}") from exc


def _filter_attribute_access(obj: Any, attr_name: Any, is_setting: bool) -> Any:
    if isinstance(attr_name, str) and not attr_name.startswith("_"):
        return attr_name
    raise AttributeError("access denied")


class LuaSandbox:
    """Lua runtime exposing the ``ciphercanvas`` API of a session."""

    def __init__(self, session: ScriptingSession) -> None:
        self.session = session
        self.lua = LuaRuntime(
            register_eval=False,
            register_builtins=False,
            attribute_filter=_filter_attribute_access,
        )
        lua_globals = self.lua.globals()
        for name in _REMOVED_GLOBALS:
            lua_globals[name] = None
        lua_globals["ciphercanvas"] = self.lua.table_from({
            "get_config": self._get_config,
            "set_config": self._set_config,
            "save_image": self._save_image,
        })

    def _get_config(self) -> Any:
        return self.lua.table_from(self.session.get_config())

    def _set_config(self, key: Any, value: Any = None) -> None:
        if not isinstance(key, str):
            raise ScriptError(f"Config key must be a string, got {type(key).__name__}")
        self.session.set_config(key, value)

    def _save_image(self, output_path: Any, svg_text: Any) -> None:
        if not isinstance(output_path, str) or not isinstance(svg_text, str):
            raise ScriptError("save_image expects (output_path: string, svg_text: string)")
        self.session.save_image(output_path, svg_text)

    def run(self, source: str, name: str = "script") -> None:
        try:
            self.lua.execute(source)
        except LuaError as exc:
            raise ScriptError(f"Error executing Lua script {name}: {exc}") from exc


def execute_script(script_path: Union[str, Path], session: Optional[ScriptingSession] = None) -> None:
    """Run a Lua script file in a fresh sandbox.

    A session is created (and closed afterwards) when none is given.
    """
    script_path = Path(script_path)
    try:
        source = script_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScriptError(f"Failed to read Lua script from {script_path}: {exc}") from exc

    logger.info("Executing Lua script: %s", script_path)
    if session is not None:
        LuaSandbox(session).run(source, name=str(script_path))
    else:
        with ScriptingSession() as owned:
            LuaSandbox(owned).run(source, name=str(script_path))
    logger.info("Lua script executed successfully.")
