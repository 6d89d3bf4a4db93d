"""Tessera compiler: template nodes to a Python render function.

The Compiler emits an ``ast.Module`` defining ``render(_scope, _env)``,
unparses it once and compiles that listing, so error locations always
index text a user can see via ``CompiledTemplate.generated_source``.

"""

from tessera.compiler.core import Compiler, RenderFunction, compile_template

__all__ = ["Compiler", "RenderFunction", "compile_template"]
