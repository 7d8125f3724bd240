from fastapi import APIRouter

from schoolhub.modules.auth.router import router as auth_router
from schoolhub.modules.classrooms.router import router as classrooms_router
from schoolhub.modules.schools.router import router as schools_router
from schoolhub.modules.students.router import router as students_router
from schoolhub.modules.transfer_requests.router import router as transfer_requests_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(schools_router, prefix="/schools", tags=["Schools"])
api_router.include_router(classrooms_router, prefix="/classrooms", tags=["Classrooms"])
api_router.include_router(students_router, prefix="/students", tags=["Students"])
api_router.include_router(
    transfer_requests_router, prefix="/transfer-requests", tags=["Transfer Requests"]
)
