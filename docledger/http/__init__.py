"""HTTP surface of the document repository."""
