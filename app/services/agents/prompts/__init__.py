# -*- coding: utf-8 -*-
"""
Prompts 配置包。

每种推理类型一个 YAML 文件，包含 system 与 user 两段模板。
"""

from .loader import PromptLoader, PromptTemplate, get_prompt_loader

__all__ = [
    "PromptLoader",
    "PromptTemplate",
    "get_prompt_loader",
]
