"""Root indexing and annotation scanning."""

from nodemcu_imagegen.roots.index import Root, RootSet, build_root, index_roots

__all__ = ["Root", "RootSet", "build_root", "index_roots"]
