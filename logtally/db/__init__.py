from .schema import install_schema

__all__ = ["install_schema"]
