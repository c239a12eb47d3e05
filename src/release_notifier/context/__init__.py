"""Context modules for gathering the release being announced.

These modules read release metadata from wherever the hosting CI
environment provides it and validate it into a ReleaseMetadata.
"""
