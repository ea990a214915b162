"""Version information for Triage Desk."""

__version__ = "1.0.0"

# Build information (populated during CI/CD)
__build_date__ = None
__commit_sha__ = None
