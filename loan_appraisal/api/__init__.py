"""
API routes for the appraisal service.
"""

from fastapi import APIRouter

from loan_appraisal.api import appraisals, calculations

router = APIRouter()

# Include sub-routers
router.include_router(appraisals.router, prefix="/appraisals", tags=["appraisals"])
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
