# Core package for configuration, logging, security and HTTP plumbing

from .config import settings
