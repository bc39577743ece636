# cms/core/plugin.py

"""
플러그인 로더 모듈입니다.

설정의 plugin_path(PLUGIN_PATH 환경 변수)에 선언된 플러그인 중 enable 이 참인 것만 불러옵니다.

    PLUGIN_PATH='{"poem": {"enable": true, "path": "plugins.poem", "limit": 20}}'

- <path>.app 모듈에서 APIRouter 인스턴스와 SQLModel 테이블 클래스를 수집합니다.
- <path>.config 모듈의 CONFIG 딕셔너리(선택)와 plugin_path의 인라인 설정을 합쳐
  config 저장소의 플러그인 이름 아래에 병합합니다. 예: config.get_item("poem.limit")
- 라우터는 /plugin/<name> 아래에 마운트되고, PermissionRouter의 권한 메타 정보는
  앱의 라우트 권한 레지스트리에 함께 등록됩니다.
"""

import importlib
import logging
from typing import Any, Dict, Mapping, Optional

from fastapi import APIRouter, FastAPI
from sqlmodel import SQLModel

from cms import PLUGIN_PREFIX
from cms.core.config import Config, config as default_config
from cms.core.permissions import RoutePermissionRegistry

logger = logging.getLogger(__name__)


class Plugin:
    """플러그인 하나. 자신의 라우터와 모델을 가집니다."""

    def __init__(self, name: str):
        self.name = name
        self.routers: Dict[str, APIRouter] = {}
        self.models: Dict[str, type] = {}

    def add_router(self, name: str, router: APIRouter) -> None:
        self.routers[name] = router

    def add_model(self, name: str, model: type) -> None:
        self.models[name] = model

    def get_model(self, name: str) -> Optional[type]:
        return self.models.get(name)

    def __repr__(self) -> str:
        return f"Plugin({self.name!r}, routers={list(self.routers)}, models={list(self.models)})"


def _is_table_model(value: Any) -> bool:
    return (
        isinstance(value, type)
        and issubclass(value, SQLModel)
        and value is not SQLModel
        and getattr(value, "__table__", None) is not None
    )


class Loader:
    def __init__(self, plugin_path: Mapping[str, Any], config: Optional[Config] = None):
        if plugin_path is None:
            raise ValueError("plugin_path must not be empty")
        self.plugin_path = dict(plugin_path)
        self.config = config or default_config
        self.plugins: Dict[str, Plugin] = {}

    def load_plugins(self) -> Dict[str, Plugin]:
        for name, conf in self.plugin_path.items():
            if not isinstance(conf, Mapping) or not conf.get("enable"):
                logger.debug("Plugin %s is disabled", name)
                continue
            module_path = conf.get("path")
            if not module_path:
                raise ValueError(f"plugin {name!r} has no path")
            self.load_config(name, module_path, conf)
            self.load_plugin(name, module_path)
        return self.plugins

    def load_plugin(self, name: str, module_path: str) -> Plugin:
        """<module_path>.app 을 임포트해 라우터와 테이블 모델을 수집합니다."""
        module = importlib.import_module(f"{module_path}.app")
        plugin = Plugin(name)
        for attr, value in vars(module).items():
            if isinstance(value, APIRouter):
                plugin.add_router(attr, value)
            elif _is_table_model(value):
                plugin.add_model(attr, value)
        self.plugins[name] = plugin
        logger.info("Loaded plugin %s (%d routers, %d models)", name, len(plugin.routers), len(plugin.models))
        return plugin

    def load_config(self, name: str, module_path: str, incoming: Mapping[str, Any]) -> None:
        """플러그인 기본 설정(CONFIG)에 인라인 설정을 덮어써 config 저장소에 병합합니다."""
        merged: Dict[str, Any] = {}
        try:
            module = importlib.import_module(f"{module_path}.config")
        except ModuleNotFoundError as e:
            # 플러그인 자체의 config 모듈이 없는 경우만 허용합니다.
            if e.name != f"{module_path}.config":
                raise
        else:
            merged.update(getattr(module, "CONFIG", {}) or {})
        merged.update(incoming)
        self.config.load_from_obj({name: merged})

    def mount(self, app: FastAPI, registry: Optional[RoutePermissionRegistry] = None) -> None:
        for name, plugin in self.plugins.items():
            for router in plugin.routers.values():
                prefix = f"{PLUGIN_PREFIX}/{name}"
                app.include_router(router, prefix=prefix)
                if registry is not None:
                    registry.include_router(router, prefix=prefix)
