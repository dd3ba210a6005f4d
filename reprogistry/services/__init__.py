"""
Services for reprogistry.

Each reproduction stage lives in its own service: registry access,
reproduction (resolve, toolchain, fetch, build), comparison and the result
cache. The orchestrator wires them together per package version.
"""
