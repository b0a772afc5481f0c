"""
skill-engine: trigger-driven selection and progressive loading of review skills

Given a source file under review, the engine decides which registered skills
apply, which of their detail modules to pull in, and assembles them into one
size-bounded context with a manifest of what was included and what was left
out.
"""

__version__ = "0.1.0"
