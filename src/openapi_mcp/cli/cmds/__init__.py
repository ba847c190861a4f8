from .serve_cmds import register as register_serve

__all__ = ["register_serve"]
