"""Browser session and page actions (Playwright).

``session`` owns the single persistent context and page; ``actions`` is
the command surface over it. ``stealth`` holds the fingerprint-masking
init script and launch flags, ``snapshot`` the bounded page digest.
"""
