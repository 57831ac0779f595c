"""API route handlers."""

from .resumes import router as resumes_router
from .review import router as review_router
from .profile import router as profile_router
