"""Ocelot — a persisted content graph and plugin runtime for static sites.

Plugins source content as nodes, transform nodes into more nodes, and
create pages from them.  Every change goes through one in-memory store,
is persisted to a snapshot between runs, and is fanned out to plugin
hooks exactly once.  Pages remember which nodes they read, so a changed
node maps straight to the pages that must be rebuilt.

Quick start::

    import ocelot

    ocelot.build("my-site/")

Three entry points::

    ocelot.build("my-site/")       # Source, create pages, export page data
    ocelot.develop("my-site/")     # Build, then rebuild on content changes
    ocelot.nodes("my-site/")       # Inspect the cached node graph

"""

__version__ = "0.1.0-dev"
__all__ = [
    "OcelotConfig",
    "Store",
    "__version__",
    "build",
    "develop",
    "nodes",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import ocelot`` fast while providing a clean top-level API.
    """
    if name == "OcelotConfig":
        from ocelot.config import OcelotConfig

        return OcelotConfig

    if name == "Store":
        from ocelot.store import Store

        return Store

    if name == "build":
        from ocelot.app import build

        return build

    if name == "develop":
        from ocelot.app import develop

        return develop

    if name == "nodes":
        from ocelot.app import nodes

        return nodes

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
