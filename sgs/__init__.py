"""Storage gateway service: projects, files and capability tokens over a
metadata store and an S3-compatible blob store."""
