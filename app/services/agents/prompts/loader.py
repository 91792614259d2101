# -*- coding: utf-8 -*-
"""
Prompt 加载器模块。

每个 YAML 文件对应一种推理类型，必须包含 system 与 user 两段模板；
user 模板使用 {variable} 占位，字面花括号写作 {{ }}。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

import yaml
from loguru import logger

from app.core.config import settings

REQUIRED_SECTIONS = ("system", "user")


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    system: str
    user: str
    mtime: float

    def section(self, key: str) -> str:
        if key not in REQUIRED_SECTIONS:
            raise KeyError(f"Prompt 键不存在: {self.name}.{key}")
        return getattr(self, key)

    def render(self, **variables) -> Tuple[str, str]:
        """返回 (system, user)，只替换 user 段；缺少变量时抛 KeyError，不会把半成品发给模型"""
        return self.system, self.user.format(**variables)


class PromptLoader:
    """
    YAML prompt 加载与缓存

    hot_reload=True 时按文件修改时间判断是否重新读取
    """

    def __init__(self, base_path: Path | str | None = None, hot_reload: bool = False):
        self.base_path = Path(base_path) if base_path is not None else Path(__file__).parent
        self.hot_reload = hot_reload
        self._cache: Dict[str, PromptTemplate] = {}

    def _path(self, name: str) -> Path:
        path = self.base_path / f"{name}.yaml"
        if not path.exists():
            raise FileNotFoundError(f"Prompt 配置文件不存在: {path}")
        return path

    def load(self, name: str) -> PromptTemplate:
        cached = self._cache.get(name)
        if cached is not None and not self.hot_reload:
            return cached

        path = self._path(name)
        mtime = path.stat().st_mtime
        if cached is not None and cached.mtime == mtime:
            return cached

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            logger.error("解析 YAML 失败 {}: {}", path, exc)
            raise

        for key in REQUIRED_SECTIONS:
            if not isinstance(data.get(key), str):
                raise ValueError(f"Prompt {name} 缺少字符串类型的 {key} 段")

        template = PromptTemplate(name=name, system=data["system"], user=data["user"], mtime=mtime)
        self._cache[name] = template
        if cached is not None:
            logger.debug("Prompt reloaded: {}", name)
        return template

    def get(self, name: str, key: str, **kwargs) -> str:
        """取单段模板，传入变量时做替换"""
        value = self.load(name).section(key)
        return value.format(**kwargs) if kwargs else value

    def clear_cache(self) -> None:
        self._cache.clear()


_loader: PromptLoader | None = None


def get_prompt_loader() -> PromptLoader:
    """进程级 PromptLoader，开发环境热加载"""
    global _loader
    if _loader is None:
        _loader = PromptLoader(hot_reload=settings.is_development)
    return _loader
