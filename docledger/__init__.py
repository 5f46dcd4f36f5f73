"""docledger: content-addressed document repository with ledger revisions.

Content payloads are stored once under their SHA-256 address; each logical
document carries an append-only chain of ledger revisions pointing at that
content, served over HTTP.
"""

__version__ = "0.1.0"
