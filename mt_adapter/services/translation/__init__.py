"""Translation request pipeline.

Use explicit imports:
    from mt_adapter.services.translation.handler import TranslationHandler
"""
