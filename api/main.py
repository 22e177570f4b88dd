from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from starlette.background import BackgroundTask
from contextlib import asynccontextmanager
from datetime import datetime, date
import sys, os
import logging
import httpx

sys.path.append(os.path.join(os.path.dirname(__file__), "../src"))
import config
import dates
import db
import logic
import journal
import stats
import chat

config.setup_logging()
logger = logging.getLogger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.http_client = httpx.AsyncClient(timeout=None)
    yield
    await app.state.http_client.aclose()


app = FastAPI(title="HabitMood API", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------
# DEPENDENCIES
# -------------------------------
def get_store_factory():
    """Callable building the per-user store; overridden in tests."""
    return db.SupabaseStore


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def load_registry(make_store, user_id: str) -> logic.HabitRegistry:
    return logic.HabitRegistry(make_store(user_id)).refresh()


def load_ledger(make_store, user_id: str) -> journal.MoodLedger:
    return journal.MoodLedger(make_store(user_id)).refresh()


def habit_payload(habit, today: date) -> dict:
    payload = habit.to_dict()
    payload["percentage"] = stats.completion_percentage(habit.completions, habit.created_at)
    payload["week"] = stats.week_window(habit, today)
    return payload


def failure(result: dict) -> dict:
    return {"success": False, "error": result.get("error", "Unknown error")}

# -------------------------------
# MODELS
# -------------------------------
class UserIDModel(BaseModel):
    user_id: str

class OnboardingModel(BaseModel):
    user_id: str
    name: str
    interests: list[str] = []

class SectionAddModel(BaseModel):
    user_id: str
    name: str
    icon: str = ""

class SectionIDModel(BaseModel):
    user_id: str
    divider_id: str

class HabitAddModel(BaseModel):
    user_id: str
    text: str
    divider_id: str
    icon: str | None = None

class HabitIDModel(BaseModel):
    user_id: str
    habit_id: str

class HabitRenameModel(BaseModel):
    user_id: str
    habit_id: str
    text: str

class HabitToggleModel(BaseModel):
    user_id: str
    habit_id: str
    day_index: int

class AnalyticsModel(BaseModel):
    user_id: str
    habit_id: str | None = None
    year: int | None = None
    month: int | None = None

class NoteListModel(BaseModel):
    user_id: str
    year: int | None = None
    month: int | None = None

class NoteSaveModel(BaseModel):
    user_id: str
    date: str
    mood: str
    note: str = ""

class NoteEditModel(BaseModel):
    user_id: str
    note_id: str
    mood: str
    note: str = ""

class NoteIDModel(BaseModel):
    user_id: str
    note_id: str

class ChatMessage(BaseModel):
    role: str
    content: str

class ChatModel(BaseModel):
    messages: list[ChatMessage]
    context: dict | None = None

# -------------------------------
# PROFILE ROUTES
# -------------------------------
@app.post("/profile/get")
def get_profile(user: UserIDModel, make_store=Depends(get_store_factory)):
    try:
        profile = logic.get_profile(make_store(user.user_id))
        return {
            "success": True,
            "needs_onboarding": profile is None,
            "profile": profile.to_dict() if profile else None,
            "interests": logic.INTERESTS,
        }
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/profile/onboard")
def onboard(body: OnboardingModel, make_store=Depends(get_store_factory)):
    try:
        result = logic.complete_onboarding(make_store(body.user_id), body.name, body.interests)
        if "error" in result:
            return failure(result)
        return {"success": True, "profile": result["profile"].to_dict(), "message": result["message"]}
    except Exception as e:
        return {"success": False, "error": str(e)}

# -------------------------------
# SECTION ROUTES
# -------------------------------
@app.post("/section/add")
def add_section(body: SectionAddModel, make_store=Depends(get_store_factory)):
    try:
        registry = load_registry(make_store, body.user_id)
        result = registry.add_section(body.name, body.icon)
        if "error" in result:
            return failure(result)
        return {"success": True, "section": result["section"].to_dict(), "message": result["message"]}
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/section/remove")
def remove_section(body: SectionIDModel, make_store=Depends(get_store_factory)):
    try:
        registry = load_registry(make_store, body.user_id)
        result = registry.delete_section(body.divider_id)
        if "error" in result:
            return failure(result)
        return result
    except Exception as e:
        return {"success": False, "error": str(e)}

# -------------------------------
# HABIT ROUTES
# -------------------------------
@app.post("/habit/list")
def list_habits(user: UserIDModel, make_store=Depends(get_store_factory)):
    try:
        registry = load_registry(make_store, user.user_id)
        today = date.today()
        return {
            "success": True,
            "sections": [s.to_dict() for s in registry.sections],
            "habits": [habit_payload(h, today) for h in registry.habits],
        }
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/habit/add")
def add_habit(body: HabitAddModel, make_store=Depends(get_store_factory)):
    try:
        registry = load_registry(make_store, body.user_id)
        result = registry.add_habit(body.text, body.divider_id, body.icon)
        if "error" in result:
            return failure(result)
        return {
            "success": True,
            "habit": habit_payload(result["habit"], date.today()),
            "message": result["message"],
        }
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/habit/rename")
def rename_habit(body: HabitRenameModel, make_store=Depends(get_store_factory)):
    try:
        registry = load_registry(make_store, body.user_id)
        result = registry.rename_habit(body.habit_id, body.text)
        return failure(result) if "error" in result else result
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/habit/remove")
def remove_habit(body: HabitIDModel, make_store=Depends(get_store_factory)):
    try:
        registry = load_registry(make_store, body.user_id)
        result = registry.delete_habit(body.habit_id)
        return failure(result) if "error" in result else result
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/habit/toggle")
def toggle_habit(body: HabitToggleModel, make_store=Depends(get_store_factory)):
    try:
        registry = load_registry(make_store, body.user_id)
        result = registry.toggle_completion(body.habit_id, body.day_index)
        if "error" in result:
            return failure(result)
        habit = registry.get_habit(body.habit_id)
        result["habit"] = habit_payload(habit, date.today())
        return result
    except Exception as e:
        return {"success": False, "error": str(e)}

# -------------------------------
# ANALYTICS ROUTES
# -------------------------------
@app.post("/analytics/month")
def month_analytics(body: AnalyticsModel, make_store=Depends(get_store_factory)):
    try:
        today = date.today()
        year = body.year or today.year
        month = body.month or today.month
        registry = load_registry(make_store, body.user_id)
        habits = registry.habits
        if body.habit_id:
            habits = [h for h in habits if h.id == body.habit_id]
            if not habits:
                return {"success": False, "error": "Habit not found."}
        report = []
        for habit in habits:
            month_stats = stats.monthly_stats(habit.completions, year, month, today)
            report.append({"habit_id": habit.id, "text": habit.text, "icon": habit.icon, **month_stats})
        return {
            "success": True,
            "year": year,
            "month": month,
            "days": [dates.date_key(d) for d in dates.month_days(year, month)],
            "today": dates.date_key(today),
            "habits": report,
        }
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/analytics/mood")
def mood_analytics(body: NoteListModel, make_store=Depends(get_store_factory)):
    try:
        today = date.today()
        ledger = load_ledger(make_store, body.user_id)
        summary = stats.mood_summary(ledger.notes, body.year or today.year, body.month or today.month, today)
        return {"success": True, **summary}
    except Exception as e:
        return {"success": False, "error": str(e)}

# -------------------------------
# MOOD NOTE ROUTES
# -------------------------------
@app.post("/note/list")
def list_notes(body: NoteListModel, make_store=Depends(get_store_factory)):
    try:
        ledger = load_ledger(make_store, body.user_id)
        if body.year and body.month:
            notes = ledger.notes_for_month(body.year, body.month)
        else:
            notes = ledger.recent(limit=len(ledger.notes))
        return {"success": True, "notes": [n.to_dict() for n in notes]}
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/note/save")
def save_note(body: NoteSaveModel, make_store=Depends(get_store_factory)):
    try:
        ledger = load_ledger(make_store, body.user_id)
        result = ledger.upsert_note(body.date, body.mood, body.note)
        if "error" in result:
            return failure(result)
        return {"success": True, "note": result["note"].to_dict(), "message": result["message"]}
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/note/edit")
def edit_note(body: NoteEditModel, make_store=Depends(get_store_factory)):
    try:
        ledger = load_ledger(make_store, body.user_id)
        result = ledger.edit_note(body.note_id, body.mood, body.note)
        if "error" in result:
            return failure(result)
        return {"success": True, "note": result["note"].to_dict(), "message": result["message"]}
    except Exception as e:
        return {"success": False, "error": str(e)}

@app.post("/note/remove")
def remove_note(body: NoteIDModel, make_store=Depends(get_store_factory)):
    try:
        ledger = load_ledger(make_store, body.user_id)
        result = ledger.delete_note(body.note_id)
        return failure(result) if "error" in result else result
    except Exception as e:
        return {"success": False, "error": str(e)}

# -------------------------------
# AI CHAT PROXY
# -------------------------------
@app.post("/ai-chat")
async def ai_chat(body: ChatModel, client: httpx.AsyncClient = Depends(get_http_client)):
    messages = [m.model_dump() for m in body.messages]
    try:
        upstream = await chat.open_stream(client, messages, body.context)
    except chat.ChatUpstreamError as e:
        if e.rate_limited:
            return JSONResponse({"error": "Rate limit exceeded. Please try again in a moment."}, status_code=429)
        if e.quota_exceeded:
            return JSONResponse({"error": "AI service quota exceeded."}, status_code=402)
        return JSONResponse({"error": "AI service error"}, status_code=500)
    except Exception as e:
        logger.exception("ai-chat error")
        return JSONResponse({"error": str(e) or "Unknown error"}, status_code=500)

    logger.info("Streaming response from chat API")
    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type="text/event-stream",
        background=BackgroundTask(upstream.aclose),
    )

@app.get("/")
def root():
    return {"message": "HabitMood API is running", "status": "healthy"}

# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}

# For running with uvicorn directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
