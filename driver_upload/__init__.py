"""Upload prebuilt kernel driver artifacts to Artifactory."""

__version__ = "0.1.0"
