from pwa2apk.models.build_config import BuildConfigRecord

__all__ = ["BuildConfigRecord"]
