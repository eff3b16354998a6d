"""
FastAPI service for the School Timetable engine.

Thin HTTP wrapper around solver.generate_timetable; no scheduling logic here.
"""

import os
import time
import json
import logging
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, Field
from typing import Optional, Union

from solver import DEFAULT_MAX_ATTEMPTS, generate_timetable

# Configure logging
DEBUG_SOLVER = os.environ.get("DEBUG_SOLVER", "").lower() in ("1", "true", "yes")
logging.basicConfig(
    level=logging.DEBUG if DEBUG_SOLVER else logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

if DEBUG_SOLVER:
    logger.info("DEBUG_SOLVER is enabled - verbose logging active")

app = FastAPI(
    title="School Timetable API",
    description="Two-phase randomized timetable generator with forced completion",
    version="1.0.0"
)

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]

# Also allow origin from environment variable
if os.environ.get("FRONTEND_URL"):
    ALLOWED_ORIGINS.append(os.environ["FRONTEND_URL"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Fields accept both the short names and the data-model names
# (teachableSubjectIds, eligibleGrades, applicableGrades, weeklyHoursByGrade, ...)

class Restriction(BaseModel):
    day: str = Field(validation_alias=AliasChoices("day", "restrictedDay"))
    periods: list[int] = Field(default_factory=list, validation_alias=AliasChoices("periods", "restrictedPeriods"))
    level: str = Field(default="required", validation_alias=AliasChoices("level", "restrictionLevel"))  # "required" | "recommended"


class Teacher(BaseModel):
    id: str
    name: str
    subjectIds: list[str] = Field(  # subject ids or names
        default_factory=list, validation_alias=AliasChoices("subjectIds", "teachableSubjectIds")
    )
    grades: list[int] = Field(  # empty = any grade
        default_factory=list, validation_alias=AliasChoices("grades", "eligibleGrades")
    )
    restrictions: list[Restriction] = Field(
        default_factory=list, validation_alias=AliasChoices("restrictions", "assignmentRestrictions")
    )


class Subject(BaseModel):
    id: str
    name: str
    grades: list[int] = Field(  # empty = grade-agnostic
        default_factory=list, validation_alias=AliasChoices("grades", "applicableGrades")
    )
    weeklyHours: Union[int, dict[int, int]] = 0  # single value or per grade
    weeklyHoursByGrade: Optional[dict[int, int]] = None  # takes precedence when non-empty
    requiresSpecialRoom: bool = False
    roomType: Optional[str] = None


class Classroom(BaseModel):
    id: str
    name: str
    type: str


class GenerateRequest(BaseModel):
    settings: Optional[dict] = None
    teachers: list[Teacher]
    subjects: list[Subject]
    classrooms: list[Classroom] = []
    maxRetryAttempts: int = DEFAULT_MAX_ATTEMPTS
    tolerantMode: bool = True
    seed: Optional[int] = None
    ordering: str = "difficulty"
    maxTimeSeconds: Optional[float] = 25.0


class GenerateResponse(BaseModel):
    success: bool
    message: str
    grid: list = []
    classSchedules: dict = {}
    teacherSchedules: dict = {}
    statistics: dict
    diagnostics: Optional[dict] = None
    elapsedSeconds: float


@app.get("/")
async def root():
    return {"message": "School Timetable API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": time.time()}


@app.post("/generate", response_model=GenerateResponse)
async def generate(request: GenerateRequest):
    """
    Generate a complete weekly timetable.

    Every slot is filled; placements that had to break a constraint are
    tagged and reported in diagnostics.
    """
    start_time = time.time()

    teachers = [t.model_dump() for t in request.teachers]
    subjects = [s.model_dump() for s in request.subjects]
    classrooms = [c.model_dump() for c in request.classrooms]

    logger.info(f"=== GENERATE REQUEST === Teachers: {len(teachers)}, Subjects: {len(subjects)}, "
                f"Classrooms: {len(classrooms)}, Attempts: {request.maxRetryAttempts}")

    if DEBUG_SOLVER:
        logger.debug(f"Settings: {request.settings}, Seed: {request.seed}, Ordering: {request.ordering}")
        for t in teachers:
            restrictions = [f"{r['day']}:{r['periods']}({r['level']})" for r in t['restrictions']]
            restriction_str = f" [{', '.join(restrictions)}]" if restrictions else ""
            logger.debug(f"  Teacher: {t['name']} subjects={t['subjectIds']}{restriction_str}")

    try:
        result = generate_timetable(
            request.settings,
            teachers,
            subjects,
            classrooms,
            max_retry_attempts=request.maxRetryAttempts,
            tolerant_mode=request.tolerantMode,
            seed=request.seed,
            ordering=request.ordering,
            max_time_seconds=request.maxTimeSeconds,
        )

        elapsed = time.time() - start_time
        stats = result['statistics']
        logger.info(f"=== GENERATE RESULT === Success: {result['success']}, "
                    f"Filled: {stats['filledSlots']}/{stats['totalSlots']}, Time: {elapsed:.1f}s")
        if not result['success']:
            logger.warning(f"REJECTED: {result['message']}")
        elif DEBUG_SOLVER:
            logger.debug(f"Suggestions: {json.dumps(result['diagnostics']['suggestions'], indent=2)}")

        return GenerateResponse(
            success=result['success'],
            message=result['message'],
            grid=result['grid'],
            classSchedules=result['classSchedules'],
            teacherSchedules=result['teacherSchedules'],
            statistics=stats,
            diagnostics=result.get('diagnostics'),
            elapsedSeconds=elapsed,
        )

    except Exception as e:
        elapsed = time.time() - start_time
        logger.error(f"GENERATE ERROR: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "status": "error",
                "message": str(e),
                "elapsedSeconds": elapsed,
            }
        )


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
