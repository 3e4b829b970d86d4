"""Model registry to ensure all ORM models are imported before table creation.

Metadata operations (create_all, drop_all) only see tables whose model
classes have been defined, so every ORM module must be imported first.
"""

# Global flag to track if models have been registered
_models_registered = False


def register_all_models() -> None:
    """Import all ORM model modules to register them with Base.metadata.

    This function is idempotent - calling it multiple times has no additional
    effect after the first call.
    """
    global _models_registered

    if _models_registered:
        return

    # History models (revisions, branches, revision counters)
    from promptline.storage import models as _  # noqa: F401

    _models_registered = True
