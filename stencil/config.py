#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/config.py
=================

Compiler options.

:class:`CompilerConfig` gathers everything that changes the generated
module without changing its meaning.  Values come from keyword
arguments, from the environment (:meth:`CompilerConfig.from_env`) and,
in the CLI, from flags, which win over both.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional

__all__ = ["CompilerConfig", "ENV_NAMESPACE", "ENV_RUNTIME_MODULE"]

_log = logging.getLogger(__name__)

ENV_NAMESPACE = "STENCIL_NAMESPACE"
ENV_RUNTIME_MODULE = "STENCIL_RUNTIME_MODULE"

_DOTTED_NAME = re.compile(r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$")


@dataclass(frozen=True)
class CompilerConfig:
    """Options for one compilation.

    Attributes
    ----------
    namespace : str
        Recorded on the generated class as ``namespace``.
    runtime_module : str
        Dotted module imported as ``_rt`` by generated code.
    indent : str
        One level of indentation in generated code.
    emit_header : bool
        Whether to start the module with the "generated" comment.
    source_map : bool
        Whether to collect a generated-line → template-location map.
    """

    namespace: str = ""
    runtime_module: str = "stencil.runtime"
    indent: str = "    "
    emit_header: bool = True
    source_map: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "CompilerConfig":
        """Build a config from ``STENCIL_*`` variables, then apply *overrides*.

        Overrides whose value is ``None`` are ignored.
        """
        env = os.environ if environ is None else environ
        values = {}
        if env.get(ENV_NAMESPACE):
            values["namespace"] = env[ENV_NAMESPACE]
        if env.get(ENV_RUNTIME_MODULE):
            values["runtime_module"] = env[ENV_RUNTIME_MODULE]
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        _log.debug("config: %s", config)
        return config

    def with_overrides(self, **overrides) -> "CompilerConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> List[str]:
        """Return human-readable warnings; an empty list means valid."""
        warnings: List[str] = []
        if self.namespace and not _DOTTED_NAME.match(self.namespace):
            warnings.append(f"namespace {self.namespace!r} is not a dotted name")
        if not _DOTTED_NAME.match(self.runtime_module):
            warnings.append(f"runtime module {self.runtime_module!r} is not a dotted name")
        if not self.indent or self.indent.strip(" \t"):
            warnings.append("indent must be non-empty whitespace")
        elif " " in self.indent and "\t" in self.indent:
            warnings.append("indent mixes tabs and spaces")
        return warnings
