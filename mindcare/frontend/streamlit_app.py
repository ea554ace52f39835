import os

import requests
import streamlit as st

from mindcare.frontend.navigation import (
    NAVIGATION_ITEMS,
    NavigationState,
    Screen,
    assessment_complete,
    chat_crisis,
    leave_crisis,
    logged_in,
    logged_out,
    navigate,
    onboarding_complete,
    visible_screen,
)

st.set_page_config(page_title="Mind Care", page_icon="💗", layout="centered")

API_BASE = st.sidebar.text_input(
    "API base URL",
    value=os.getenv("MINDCARE_API_BASE", "http://127.0.0.1:8000"),
)

if "nav" not in st.session_state:
    st.session_state.nav = NavigationState()
if "chat_history" not in st.session_state:
    st.session_state.chat_history = []


def nav() -> NavigationState:
    return st.session_state.nav


def go(state: NavigationState) -> None:
    st.session_state.nav = state
    st.rerun()


def api_headers() -> dict:
    if nav().token:
        return {"Authorization": f"Bearer {nav().token}"}
    return {}


def api_url(path: str) -> str:
    return f"{API_BASE}{path}"


def safe_json(resp: requests.Response):
    content_type = resp.headers.get("content-type", "")
    if "application/json" not in content_type:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def show_response_error(resp: requests.Response, path: str, fallback_message: str) -> None:
    url = api_url(path)
    payload = safe_json(resp)
    if payload and isinstance(payload, dict):
        detail = payload.get("detail", fallback_message)
        st.error(f"{fallback_message} ({resp.status_code}) | {url} | {detail}")
        return
    text = (resp.text or "").strip()
    snippet = text[:500] if text else "No response body."
    st.error(f"{fallback_message} ({resp.status_code}) | {url} | {snippet}")


def api_request(method: str, path: str, **kwargs):
    try:
        return requests.request(method, api_url(path), headers=api_headers(), timeout=30, **kwargs)
    except requests.RequestException as exc:
        st.error(f"Request failed: {exc}")
        return None


def api_get(path: str):
    return api_request("GET", path)


def api_post(path: str, json=None, data=None, files=None):
    return api_request("POST", path, json=json, data=data, files=files)


def api_put(path: str, json=None):
    return api_request("PUT", path, json=json)


def render_login() -> None:
    st.title("Welcome to Mind Care")
    login_tab, register_tab = st.tabs(["Sign In", "Create Account"])

    with login_tab:
        with st.form("login_form"):
            email = st.text_input("Email Address", key="login_email")
            password = st.text_input("Password", type="password", key="login_password")
            if st.form_submit_button("Sign In"):
                if not email or not password:
                    st.warning("Enter your email and password.")
                else:
                    resp = api_post("/auth/login", data={"username": email, "password": password})
                    if resp is not None and resp.ok:
                        payload = safe_json(resp) or {}
                        go(logged_in(nav(), payload.get("user"), payload.get("access_token")))
                    elif resp is not None:
                        show_response_error(resp, "/auth/login", "Login failed.")

    with register_tab:
        with st.form("register_form"):
            full_name = st.text_input("Full Name", key="reg_name")
            email = st.text_input("Email Address", key="reg_email")
            password = st.text_input("Password", type="password", key="reg_password")
            confirm = st.text_input("Confirm Password", type="password", key="reg_confirm")
            if st.form_submit_button("Sign Up"):
                if password != confirm:
                    st.error("Passwords do not match")
                elif not full_name or not email or not password:
                    st.warning("Fill in every field.")
                else:
                    resp = api_post(
                        "/auth/register",
                        json={"full_name": full_name, "email": email, "password": password},
                    )
                    if resp is not None and resp.ok:
                        st.success("Registration successful! Please sign in.")
                    elif resp is not None:
                        show_response_error(resp, "/auth/register", "Registration failed.")


def render_onboarding() -> None:
    st.title("Before we begin")
    st.write(
        "Mind Care offers screening questionnaires, self-help resources and chat support. "
        "It is not a diagnosis and does not replace a professional."
    )
    st.write("Your answers to the assessment are used only to suggest next steps and are not stored.")
    consent = st.checkbox("I understand and want to continue")
    if st.button("Continue", disabled=not consent):
        go(onboarding_complete(nav()))


def render_home() -> None:
    user = nav().user or {}
    st.title(f"Welcome, {user.get('name', '')}!")
    st.write("Take a short check-in to see which support fits you best right now.")
    if st.button("Take Assessment"):
        go(navigate(nav(), Screen.ASSESSMENT))


def render_assessment() -> None:
    st.title("Assessment")
    st.caption("Over the last 2 weeks, how often have you been bothered by the following?")
    resp = api_get("/assessment/questions")
    if resp is None:
        st.stop()
    if not resp.ok:
        show_response_error(resp, "/assessment/questions", "Unable to load the assessment.")
        st.stop()
    bank = safe_json(resp) or {}
    options = bank.get("options", [])
    labels = {option["value"]: option["label"] for option in options}
    values = [option["value"] for option in options]

    with st.form("assessment_form"):
        answers = {"phq9": [], "gad7": []}
        for instrument, heading in (("phq9", "Mood"), ("gad7", "Anxiety")):
            st.subheader(heading)
            for question in bank.get(instrument, []):
                choice = st.radio(
                    question["text"],
                    values,
                    index=None,
                    format_func=lambda value: labels.get(value, str(value)),
                    key=f"{instrument}_{question['index']}",
                    horizontal=True,
                )
                answers[instrument].append(choice)
        if st.form_submit_button("See my results"):
            if any(value is None for value in answers["phq9"] + answers["gad7"]):
                st.warning("Please answer every question.")
            else:
                submit = api_post("/assessment/submit", json=answers)
                if submit is not None and submit.ok:
                    go(assessment_complete(nav(), safe_json(submit) or {}))
                elif submit is not None:
                    show_response_error(submit, "/assessment/submit", "Unable to score the assessment.")


def render_results() -> None:
    st.title("Your Results")
    result = nav().assessment_result
    if not result:
        st.info("Take the assessment to see your results.")
        return
    col_phq, col_gad = st.columns(2)
    col_phq.metric("Mood (PHQ-9)", result.get("phq9_score", 0), result.get("phq9_severity", ""))
    col_gad.metric("Anxiety (GAD-7)", result.get("gad7_score", 0), result.get("gad7_severity", ""))
    reasons = result.get("reasons", [])
    if reasons:
        st.write("Why this result?")
        for reason in reasons:
            st.write(f"- {reason}")
    st.write("Suggested next steps:")
    for action in result.get("recommended_actions", []):
        st.write(f"- {action}")
    col_a, col_b, col_c = st.columns(3)
    if col_a.button("Self-help resources"):
        go(navigate(nav(), Screen.SELFHELP))
    if col_b.button("Book a session"):
        go(navigate(nav(), Screen.BOOKING))
    if col_c.button("Chat support"):
        go(navigate(nav(), Screen.CHATBOT))


def render_selfhelp() -> None:
    st.title("Self-help Resources")
    st.markdown(
        "- **Box breathing**: breathe in for 4, hold for 4, out for 4, hold for 4.\n"
        "- **5-4-3-2-1 grounding**: name 5 things you see, 4 you feel, 3 you hear, 2 you smell, 1 you taste.\n"
        "- **Sleep routine**: keep the same wake-up time every day, including weekends.\n"
        "- **Move a little**: a 10-minute walk can lift your mood."
    )
    result = nav().assessment_result
    if result:
        st.subheader("Picked for you")
        for action in result.get("recommended_actions", []):
            st.write(f"- {action}")


def render_chatbot() -> None:
    st.title("Chat Support")
    st.caption("Not a diagnosis. If you feel unsafe contact local emergency services.")
    for role, content in st.session_state.chat_history:
        with st.chat_message(role):
            st.write(content)
    message = st.chat_input("Type your message")
    if not message:
        return
    st.session_state.chat_history.append(("user", message))
    resp = api_post("/chat", json={"message": message})
    if resp is not None and resp.ok:
        payload = safe_json(resp) or {}
        st.session_state.chat_history.append(("assistant", payload.get("reply", "")))
        if payload.get("crisis"):
            go(chat_crisis(nav()))
        st.rerun()
    elif resp is not None:
        show_response_error(resp, "/chat", "Chat is unavailable right now.")


def render_booking() -> None:
    st.title("Book a Session")
    st.write("Campus counsellors are available Monday to Friday, 9am to 5pm.")
    st.write("Email the wellbeing centre with two times that suit you and a counsellor will confirm.")


def render_peersupport() -> None:
    st.title("Community")
    st.write("Peer support circles meet weekly and are moderated by trained student volunteers.")
    st.write("Be kind, keep what others share private, and reach out to a counsellor if things feel heavy.")


def render_profile() -> None:
    st.title("My Profile")
    user_id = (nav().user or {}).get("id")
    path = f"/users/{user_id}"
    resp = api_get(path)
    if resp is None:
        st.stop()
    if not resp.ok:
        show_response_error(resp, path, "Unable to load profile.")
        st.stop()
    profile = safe_json(resp) or {}

    completion_resp = api_get(f"{path}/completion")
    if completion_resp is not None and completion_resp.ok:
        percent = (safe_json(completion_resp) or {}).get("percent", 0)
        st.progress(percent / 100, text=f"{percent}% Complete")

    photo_url = profile.get("profile_photo_url")
    if photo_url:
        st.image(api_url(photo_url), width=120)
    upload = st.file_uploader("Upload Photo", type=["jpg", "jpeg", "png", "gif", "webp"])
    if upload is not None and st.button("Save photo"):
        files = {"profile_photo": (upload.name, upload.getvalue(), upload.type)}
        photo_resp = api_post(f"{path}/photo", files=files)
        if photo_resp is not None and photo_resp.ok:
            st.success("Photo updated.")
            st.rerun()
        elif photo_resp is not None:
            show_response_error(photo_resp, f"{path}/photo", "Photo upload failed.")

    genders = ["male", "female", "other", "prefer_not_to_say"]
    years = ["firstYear", "secondYear", "thirdYear", "fourthYear", "graduate", "postGraduate"]
    with st.form("profile_form"):
        full_name = st.text_input("Full Name", value=profile.get("full_name") or "")
        st.text_input("Email Address", value=profile.get("email") or "", disabled=True)
        phone = st.text_input("Phone Number", value=profile.get("phone_number") or "")
        institution = st.text_input("Institution", value=profile.get("institution") or "")
        gender = st.selectbox(
            "Gender",
            genders,
            index=genders.index(profile["gender"]) if profile.get("gender") in genders else None,
        )
        year = st.selectbox(
            "Year of Study",
            years,
            index=years.index(profile["year_of_study"]) if profile.get("year_of_study") in years else None,
        )
        if st.form_submit_button("Save Changes"):
            update = {
                "full_name": full_name,
                "phone_number": phone or None,
                "institution": institution or None,
                "gender": gender,
                "year_of_study": year,
            }
            save_resp = api_put(path, json=update)
            if save_resp is not None and save_resp.ok:
                st.success("Profile updated!")
            elif save_resp is not None:
                show_response_error(save_resp, path, "Unable to save profile.")


def render_crisis() -> None:
    st.error("Immediate Help Required")
    st.write("Your safety is our top priority. Please use these resources now.")
    resp = api_get("/safety/resources")
    payload = safe_json(resp) if resp is not None and resp.ok else None
    if payload:
        for helpline in payload.get("helplines", []):
            st.markdown(f"**{helpline['label']}**: [{helpline['number']}](tel:{helpline['number'].replace('-', '')})")
            st.caption(helpline.get("note", ""))
    else:
        st.markdown("**National Helpline**: [1800-599-0019](tel:18005990019)")
    for item in (nav().assessment_result or {}).get("crisis_guidance", []):
        st.write(f"- {item}")
    if st.button("Go Back to Home"):
        go(leave_crisis(nav()))


SCREENS = {
    Screen.LOGIN: render_login,
    Screen.ONBOARDING: render_onboarding,
    Screen.HOME: render_home,
    Screen.ASSESSMENT: render_assessment,
    Screen.RESULTS: render_results,
    Screen.SELFHELP: render_selfhelp,
    Screen.CHATBOT: render_chatbot,
    Screen.BOOKING: render_booking,
    Screen.PROFILE: render_profile,
    Screen.CRISIS: render_crisis,
    Screen.PEERSUPPORT: render_peersupport,
}

current = visible_screen(nav())
if current not in (Screen.LOGIN, Screen.ONBOARDING):
    st.sidebar.title("Mind Care")
    for screen, label in NAVIGATION_ITEMS:
        if st.sidebar.button(label, key=f"nav_{screen.value}", disabled=screen == current):
            go(navigate(nav(), screen))
    if st.sidebar.button("Logout"):
        st.session_state.chat_history = []
        go(logged_out(nav()))

SCREENS[current]()
