import streamlit as st
import requests
import sys, os
import logging
from datetime import date, datetime
import calendar
import pandas as pd
import matplotlib.pyplot as plt

sys.path.append(os.path.join(os.path.dirname(__file__), "../src"))
import config
import dates
import chat
from models import Mood

config.setup_logging()
logger = logging.getLogger("frontend")

API_URL = config.API_URL

# -------------------------------
# API HELPERS
# -------------------------------
def safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        return {}

def post_api(path, payload):
    try:
        resp = requests.post(f"{API_URL}{path}", json=payload, timeout=30)
    except requests.RequestException as e:
        logger.error("API call %s failed: %s", path, e)
        return {"success": False, "error": "Could not reach the server"}
    return safe_json(resp)

def user_id():
    return st.session_state.user["user_id"]

def get_profile_api():
    return post_api("/profile/get", {"user_id": user_id()})

def onboard_api(name, interests):
    return post_api("/profile/onboard", {"user_id": user_id(), "name": name, "interests": interests})

def list_habits_api():
    data = post_api("/habit/list", {"user_id": user_id()})
    if data.get("success"):
        return data.get("sections", []), data.get("habits", [])
    return [], []

def add_habit_api(text, divider_id, icon):
    return post_api("/habit/add", {"user_id": user_id(), "text": text, "divider_id": divider_id, "icon": icon})

def rename_habit_api(habit_id, text):
    return post_api("/habit/rename", {"user_id": user_id(), "habit_id": habit_id, "text": text})

def remove_habit_api(habit_id):
    return post_api("/habit/remove", {"user_id": user_id(), "habit_id": habit_id})

def toggle_habit_api(habit_id, day_index):
    return post_api("/habit/toggle", {"user_id": user_id(), "habit_id": habit_id, "day_index": day_index})

def add_section_api(name, icon):
    return post_api("/section/add", {"user_id": user_id(), "name": name, "icon": icon})

def remove_section_api(divider_id):
    return post_api("/section/remove", {"user_id": user_id(), "divider_id": divider_id})

def month_analytics_api(year, month, habit_id=None):
    return post_api("/analytics/month", {"user_id": user_id(), "habit_id": habit_id, "year": year, "month": month})

def mood_analytics_api(year, month):
    return post_api("/analytics/mood", {"user_id": user_id(), "year": year, "month": month})

def list_notes_api(year=None, month=None):
    data = post_api("/note/list", {"user_id": user_id(), "year": year, "month": month})
    return data.get("notes", []) if data.get("success") else []

def save_note_api(date_key, mood, note):
    return post_api("/note/save", {"user_id": user_id(), "date": date_key, "mood": mood, "note": note})

def edit_note_api(note_id, mood, note):
    return post_api("/note/edit", {"user_id": user_id(), "note_id": note_id, "mood": mood, "note": note})

def remove_note_api(note_id):
    return post_api("/note/remove", {"user_id": user_id(), "note_id": note_id})

def open_chat_api(messages, context):
    """Return (streamed response, None) or (None, error text)."""
    try:
        resp = requests.post(f"{API_URL}/ai-chat", json={"messages": messages, "context": context},
                             stream=True, timeout=120)
    except requests.RequestException as e:
        logger.error("Chat request failed: %s", e)
        return None, "Sorry, I couldn't reach the server."
    if resp.status_code != 200:
        error = safe_json(resp).get("error", "Something went wrong.")
        resp.close()
        return None, error
    return resp, None

def notify(result, success_text=None):
    if result.get("success"):
        if success_text or result.get("message"):
            st.toast(success_text or result["message"])
    elif result.get("error"):
        st.error(result["error"])

# -------------------------------
# SESSION STATE
# -------------------------------
def init_session_state():
    defaults = {
        "user": None,
        "sections": [],
        "habits": [],
        "notes": [],
        "chat_messages": [],
        "analytics_month": (date.today().year, date.today().month),
        "editing_habit": None,
        "editing_note": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value

def load_fresh_data():
    st.session_state.sections, st.session_state.habits = list_habits_api()
    st.session_state.notes = list_notes_api()

def chat_context():
    return {
        "todos": st.session_state.habits,
        "dividers": st.session_state.sections,
        "notes": st.session_state.notes,
    }

# -------------------------------
# SIGN IN & ONBOARDING
# -------------------------------
def sign_in_page():
    st.markdown("# 🌱 HabitMood")
    st.caption("Track your habits and how you feel, one day at a time")
    uid = st.text_input("User ID", placeholder="Your account id")
    if st.button("Continue", type="primary", use_container_width=True):
        if uid.strip():
            st.session_state.user = {"user_id": uid.strip()}
            st.rerun()
        else:
            st.warning("Please enter your user id")

def onboarding_page(interests):
    st.markdown("# 👋 Welcome!")
    name = st.text_input("What should we call you?")
    chosen = st.multiselect("What are you interested in?", interests)
    st.caption("Select multiple interests that resonate with you")
    if st.button("Get Started", type="primary", use_container_width=True):
        result = onboard_api(name, chosen)
        notify(result)
        if result.get("success"):
            st.session_state.user["name"] = result["profile"]["name"]
            load_fresh_data()
            st.rerun()

# -------------------------------
# HABITS PAGE
# -------------------------------
def render_habit(habit):
    cols = st.columns([4, 1] + [1] * len(habit["week"]) + [1, 1])
    with cols[0]:
        if st.session_state.editing_habit == habit["id"]:
            new_text = st.text_input("Habit", value=habit["text"], key=f"edit_{habit['id']}",
                                     label_visibility="collapsed")
            if st.button("Save", key=f"save_{habit['id']}"):
                notify(rename_habit_api(habit["id"], new_text))
                st.session_state.editing_habit = None
                load_fresh_data()
                st.rerun()
        else:
            st.markdown(f"**{habit['text']}**")
    cols[1].markdown(f"**{habit['percentage']}%**")
    for cell, col in zip(habit["week"], cols[2:]):
        label = "✅" if cell["completed"] else cell["label"][:2]
        if col.button(label, key=f"day_{habit['id']}_{cell['day_index']}",
                      disabled=cell["is_future"], help=cell["date"],
                      type="primary" if cell["is_today"] else "secondary"):
            result = toggle_habit_api(habit["id"], cell["day_index"])
            if not result.get("success") and result.get("error"):
                st.error(result["error"])
            load_fresh_data()
            st.rerun()
    if cols[-2].button("✏️", key=f"rename_{habit['id']}"):
        st.session_state.editing_habit = habit["id"]
        st.rerun()
    if cols[-1].button("🗑️", key=f"delete_{habit['id']}"):
        notify(remove_habit_api(habit["id"]))
        load_fresh_data()
        st.rerun()

def habits_page():
    st.markdown("# ✅ Habits")
    st.caption(date.today().strftime("%A, %B %d"))

    sections = st.session_state.sections
    for section in sections:
        header, remove = st.columns([6, 1])
        header.markdown(f"### {section['name']}")
        if remove.button("Delete section", key=f"del_section_{section['id']}"):
            notify(remove_section_api(section["id"]))
            load_fresh_data()
            st.rerun()
        section_habits = [h for h in st.session_state.habits if h["divider_id"] == section["id"]]
        if not section_habits:
            st.caption("No habits in this section yet")
        for habit in section_habits:
            render_habit(habit)

    st.markdown("---")
    add_habit, add_section = st.columns(2)
    with add_habit:
        with st.form("add_habit", clear_on_submit=True):
            st.markdown("#### ➕ New habit")
            text = st.text_input("Habit")
            names = {s["name"]: s["id"] for s in sections}
            section_name = st.selectbox("Section", list(names.keys()))
            icon = st.text_input("Icon", value="PersonStanding")
            if st.form_submit_button("Add habit"):
                if not names:
                    st.warning("Create a section first")
                else:
                    notify(add_habit_api(text, names[section_name], icon))
                    load_fresh_data()
                    st.rerun()
    with add_section:
        with st.form("add_section", clear_on_submit=True):
            st.markdown("#### 🗂️ New section")
            name = st.text_input("Section name")
            icon = st.text_input("Icon", value="Sun")
            if st.form_submit_button("Add section"):
                notify(add_section_api(name, icon))
                load_fresh_data()
                st.rerun()

# -------------------------------
# ANALYTICS PAGE
# -------------------------------
def create_month_chart(report):
    fig, ax = plt.subplots(figsize=(8, max(2, len(report) * 0.5)))
    names = [h["text"] for h in report]
    values = [h["percentage"] for h in report]
    ax.barh(names, values, color="#8A2BE2")
    ax.set_xlim(0, 100)
    ax.set_xlabel("Completion %")
    ax.invert_yaxis()
    fig.tight_layout()
    return fig

def create_mood_chart(counts):
    labels = [f"{m.emoji} {m.label}" for m in Mood if counts.get(m.value)]
    values = [counts[m.value] for m in Mood if counts.get(m.value)]
    fig, ax = plt.subplots(figsize=(4, 4))
    ax.pie(values, labels=labels, autopct="%1.0f%%", startangle=90)
    ax.axis("equal")
    return fig

def render_calendar(year, month, completed, today_key):
    st.markdown("| S | M | T | W | T | F | S |\n|---|---|---|---|---|---|---|")
    cal = calendar.Calendar(firstweekday=6)
    rows = []
    for week in cal.monthdatescalendar(year, month):
        cells = []
        for day in week:
            key = dates.date_key(day)
            if day.month != month:
                cells.append(" ")
            elif key in completed:
                cells.append(f"**{day.day}** ✅")
            elif key > today_key:
                cells.append(f"_{day.day}_")
            else:
                cells.append(str(day.day))
        rows.append("| " + " | ".join(cells) + " |")
    st.markdown("\n".join(rows))

def select_habit(report):
    """Pick one habit report; options are ids so equal names stay distinct."""
    by_id = {h["habit_id"]: h for h in report}
    return by_id[st.selectbox("Select Habit", list(by_id.keys()), format_func=lambda hid: by_id[hid]["text"])]

def analytics_page():
    st.markdown("# 📊 Analytics")
    year, month = st.session_state.analytics_month

    prev_col, title_col, next_col = st.columns([1, 4, 1])
    if prev_col.button("◀", key="prev_month"):
        st.session_state.analytics_month = dates.shift_month(year, month, -1)
        st.rerun()
    title_col.markdown(f"### {calendar.month_name[month]} {year}")
    if next_col.button("▶", key="next_month"):
        st.session_state.analytics_month = dates.shift_month(year, month, 1)
        st.rerun()

    data = month_analytics_api(year, month)
    report = data.get("habits", []) if data.get("success") else []
    if not report:
        st.info("No habits to analyze yet. Add some habits to see your progress!")
    else:
        selected = select_habit(report)
        c1, c2, c3 = st.columns(3)
        c1.metric("Completion Rate", f"{selected['percentage']}%")
        c2.metric("🔥 Current Streak", selected["current_streak"])
        c3.metric("🏆 Longest Streak", selected["longest_streak"])
        render_calendar(year, month, set(selected["completed_dates"]), data["today"])
        st.caption(f"{selected['completed_days']} of {selected['total_days']} days completed")
        st.pyplot(create_month_chart(report))

    mood = mood_analytics_api(year, month)
    if mood.get("success") and mood.get("entries"):
        st.markdown("### 🙂 Mood this month")
        left, right = st.columns(2)
        with left:
            st.pyplot(create_mood_chart(mood["counts"]))
        with right:
            st.metric("Journaling streak", mood["current_streak"])
            st.metric("Longest journaling streak", mood["longest_streak"])

# -------------------------------
# JOURNAL PAGE
# -------------------------------
MOOD_OPTIONS = [m.value for m in Mood]

def mood_format(value):
    mood = Mood.parse(value)
    return f"{mood.emoji} {mood.label}"

def journal_page():
    st.markdown("# 📝 Mood Journal")
    today = date.today()
    selected = st.date_input("Day", value=today, max_value=today)
    key = dates.date_key(selected)
    existing = next((n for n in st.session_state.notes if n["date"] == key), None)
    if existing:
        st.caption("You already have an entry for this day. Saving will update it.")

    with st.form("mood_entry", clear_on_submit=True):
        mood = st.radio("How are you feeling?", MOOD_OPTIONS, format_func=mood_format, horizontal=True,
                        index=MOOD_OPTIONS.index(existing["mood"]) if existing else 2)
        note = st.text_area("Notes (optional)", value=existing["note"] if existing else "")
        if st.form_submit_button("Save entry", type="primary"):
            notify(save_note_api(key, mood, note))
            load_fresh_data()
            st.rerun()

    st.markdown("### Past entries")
    notes = list_notes_api(selected.year, selected.month)
    if not notes:
        st.caption("No entries this month")
    for entry in notes:
        with st.container(border=True):
            top, edit, remove = st.columns([6, 1, 1])
            top.markdown(f"**{datetime.strptime(entry['date'], '%Y-%m-%d').strftime('%a, %b %d')}** "
                         f"{mood_format(entry['mood'])}")
            if entry["note"]:
                st.write(entry["note"])
            if edit.button("✏️", key=f"edit_note_{entry['id']}"):
                st.session_state.editing_note = entry["id"]
                st.rerun()
            if remove.button("🗑️", key=f"del_note_{entry['id']}"):
                notify(remove_note_api(entry["id"]))
                load_fresh_data()
                st.rerun()
            if st.session_state.editing_note == entry["id"]:
                new_mood = st.selectbox("Mood", MOOD_OPTIONS, format_func=mood_format,
                                        index=MOOD_OPTIONS.index(entry["mood"]), key=f"mood_{entry['id']}")
                new_note = st.text_area("Note", value=entry["note"], key=f"note_{entry['id']}")
                if st.button("Update", key=f"update_{entry['id']}"):
                    notify(edit_note_api(entry["id"], new_mood, new_note))
                    st.session_state.editing_note = None
                    load_fresh_data()
                    st.rerun()

    if notes:
        table = pd.DataFrame(notes)[["date", "mood", "note"]]
        table["mood"] = table["mood"].map(mood_format)
        with st.expander("Month at a glance"):
            st.dataframe(table, hide_index=True, use_container_width=True)

# -------------------------------
# CHAT PAGE
# -------------------------------
def chat_page():
    st.markdown("# 💬 Therapy Guide")
    for message in st.session_state.chat_messages:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])

    prompt = st.chat_input("How are you doing today?")
    if prompt:
        st.session_state.chat_messages.append({"role": "user", "content": prompt})
        with st.chat_message("user"):
            st.markdown(prompt)
        resp, error = open_chat_api(st.session_state.chat_messages, chat_context())
        if error:
            # failed turns stay out of the history sent upstream
            st.session_state.chat_messages.pop()
            st.error(error)
            return
        with st.chat_message("assistant"):
            reply = st.write_stream(chat.iter_deltas(resp.iter_lines()))
        st.session_state.chat_messages.append({"role": "assistant", "content": reply})

# -------------------------------
# MAIN
# -------------------------------
def main():
    st.set_page_config(page_title="HabitMood", page_icon="🌱", layout="wide")
    init_session_state()

    if not st.session_state.user:
        sign_in_page()
        return

    profile = get_profile_api()
    if not profile.get("success"):
        st.error(profile.get("error", "Could not load your profile"))
        return
    if profile.get("needs_onboarding"):
        onboarding_page(profile.get("interests", []))
        return

    if not st.session_state.sections and not st.session_state.habits:
        load_fresh_data()

    st.sidebar.markdown(f"### Hi, {profile['profile']['name']} 👋")
    pages = {
        "✅ Habits": habits_page,
        "📊 Analytics": analytics_page,
        "📝 Journal": journal_page,
        "💬 Chat": chat_page,
    }
    choice = st.sidebar.radio("Go to:", list(pages.keys()))
    pages[choice]()

    if st.sidebar.button("🚪 Sign out", use_container_width=True):
        for key in ["user", "sections", "habits", "notes", "chat_messages", "editing_habit", "editing_note"]:
            st.session_state.pop(key, None)
        st.rerun()

if __name__ == "__main__":
    main()
