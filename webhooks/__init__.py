"""
webhooks — signature verification and idempotent dispatch of provider events.
"""
