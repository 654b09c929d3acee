# Infrastructure Package
from .yaml_repository import YamlCardRepository

__all__ = ["YamlCardRepository"]
