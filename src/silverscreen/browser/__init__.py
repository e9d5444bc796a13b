"""Browser automation modules (Playwright async API).

Engine launching lives in ``launcher``; anti-detection in ``stealth``;
selector suppression in ``hiding``; interstitial handling in
``challenge``; page-specific interaction in ``plugins``.
"""
