# 📄 File: app/shared/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Marks the 'shared' folder as a Python package containing the common tools every part
# of the KrishiVedha app uses, like security checks, error handling and logging.
#
# 🧪 Purpose (Technical Summary):
# Shared kernel package initialization for configuration, the admission pipeline,
# error classification, retry orchestration and infrastructure adapters.
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - All application modules importing shared utilities

"""
Shared Kernel - Common Utilities and Infrastructure

- Configuration management
- Admission pipeline (sanitize, rate limit, authenticate, validate, authorize)
- Error classification and retry orchestration
- Document and image storage
- Structured logging
"""

__all__ = []
