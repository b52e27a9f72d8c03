"""
juicegen — Go implementation generator for juice mappers.

Reads a Go interface and the juice XML statements registered for it, and
writes the Go struct that implements the interface by forwarding every
method to the matching juice query or exec call.

Quick start
-----------
    from juicegen.context import ApiVersion, GenerationContext
    from juicegen.generator import Generator
    from juicegen.impl import Implementation
    from juicegen.parser import find_interface
    from juicegen.registry import StatementRegistry

    iface = find_interface("internal/repo", "UserRepository")
    registry = StatementRegistry.load("juice.xml")
    context = GenerationContext(ApiVersion.V1, "UserRepository", "repo.UserRepository")
    print(Generator(Implementation(iface, registry, context)).generate().read())
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
