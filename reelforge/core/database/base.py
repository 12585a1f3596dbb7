# File: reelforge/core/database/base.py

from sqlalchemy.orm import declarative_base

# The shared registry. Projects, clips and export jobs all inherit from this.
Base = declarative_base()
