"""
connectors — OAuth token-exchange adapters for social providers.

Each provider (Facebook, LinkedIn, TikTok, Twitter) is a subclass of
BaseConnector exposing the same ``exchange`` contract:

  • Facebook  — code → short-lived → long-lived token → managed pages
  • LinkedIn  — single form-encoded POST
  • TikTok    — single POST with PKCE verifier
  • Twitter   — single POST with PKCE verifier and HTTP Basic client auth

Connectors are only called through ``core.exchange_coordinator`` so that
every code is claimed before it reaches a provider.
"""
