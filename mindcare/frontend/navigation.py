from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class Screen(str, Enum):
    LOGIN = "login"
    ONBOARDING = "onboarding"
    HOME = "home"
    ASSESSMENT = "assessment"
    RESULTS = "results"
    SELFHELP = "selfhelp"
    CHATBOT = "chatbot"
    BOOKING = "booking"
    PROFILE = "profile"
    CRISIS = "crisis"
    PEERSUPPORT = "peersupport"


SCREEN_FOR_RISK = {
    "crisis": Screen.CRISIS,
    "elevated": Screen.RESULTS,
    "low": Screen.SELFHELP,
}

NAVIGATION_ITEMS = [
    (Screen.HOME, "Home"),
    (Screen.ASSESSMENT, "Assessment"),
    (Screen.SELFHELP, "Resources"),
    (Screen.CHATBOT, "Chat Support"),
    (Screen.PEERSUPPORT, "Community"),
    (Screen.BOOKING, "Book Session"),
    (Screen.PROFILE, "Profile"),
]


@dataclass(frozen=True)
class NavigationState:
    screen: Screen = Screen.LOGIN
    user: Optional[dict] = None
    token: Optional[str] = None
    consent_given: bool = False
    assessment_result: Optional[dict] = None


def visible_screen(state: NavigationState) -> Screen:
    """The screen to render, after applying the login and consent gates."""
    if state.user is None:
        return Screen.LOGIN
    if not state.consent_given:
        return Screen.ONBOARDING
    return state.screen


def logged_in(state: NavigationState, user: dict, token: str) -> NavigationState:
    return replace(state, user=user, token=token, screen=Screen.ONBOARDING)


def logged_out(state: NavigationState) -> NavigationState:
    return NavigationState()


def onboarding_complete(state: NavigationState) -> NavigationState:
    return replace(state, consent_given=True, screen=Screen.HOME)


def navigate(state: NavigationState, screen: Screen) -> NavigationState:
    return replace(state, screen=Screen(screen))


def screen_for_risk(risk_level: str) -> Screen:
    try:
        return SCREEN_FOR_RISK[risk_level]
    except KeyError as exc:
        raise ValueError(f"Unknown risk level: {risk_level!r}") from exc


def assessment_complete(state: NavigationState, result: dict) -> NavigationState:
    return replace(state, assessment_result=result, screen=screen_for_risk(result["risk_level"]))


def chat_crisis(state: NavigationState) -> NavigationState:
    return replace(state, screen=Screen.CRISIS)


def leave_crisis(state: NavigationState) -> NavigationState:
    return replace(state, screen=Screen.HOME)
