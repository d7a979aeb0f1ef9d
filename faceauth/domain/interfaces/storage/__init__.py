from .template_store import TemplateStore

__all__ = ["TemplateStore"]
