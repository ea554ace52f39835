import unittest

from mindcare.frontend import navigation
from mindcare.frontend.navigation import NavigationState, Screen


class NavigationTests(unittest.TestCase):
    def setUp(self):
        self.user = {"id": 1, "name": "Asha", "email": "asha@example.com"}

    def signed_in(self):
        state = navigation.logged_in(NavigationState(), self.user, "token")
        return navigation.onboarding_complete(state)

    def test_starts_on_login(self):
        self.assertEqual(navigation.visible_screen(NavigationState()), Screen.LOGIN)

    def test_login_gate_overrides_requested_screen(self):
        state = navigation.navigate(NavigationState(), Screen.PROFILE)
        self.assertEqual(navigation.visible_screen(state), Screen.LOGIN)

    def test_consent_gate_after_login(self):
        state = navigation.logged_in(NavigationState(), self.user, "token")
        state = navigation.navigate(state, Screen.CHATBOT)
        self.assertEqual(navigation.visible_screen(state), Screen.ONBOARDING)

    def test_onboarding_leads_home(self):
        self.assertEqual(navigation.visible_screen(self.signed_in()), Screen.HOME)

    def test_risk_levels_route_to_screens(self):
        expected = {"crisis": Screen.CRISIS, "elevated": Screen.RESULTS, "low": Screen.SELFHELP}
        for level, screen in expected.items():
            state = navigation.assessment_complete(self.signed_in(), {"risk_level": level})
            self.assertEqual(navigation.visible_screen(state), screen)
            self.assertEqual(state.assessment_result["risk_level"], level)

    def test_unknown_risk_level_rejected(self):
        with self.assertRaises(ValueError):
            navigation.assessment_complete(self.signed_in(), {"risk_level": "moderate"})

    def test_chat_crisis_and_back(self):
        state = navigation.chat_crisis(navigation.navigate(self.signed_in(), Screen.CHATBOT))
        self.assertEqual(state.screen, Screen.CRISIS)
        self.assertEqual(navigation.leave_crisis(state).screen, Screen.HOME)

    def test_logout_resets_everything(self):
        state = navigation.logged_out(self.signed_in())
        self.assertEqual(state, NavigationState())

    def test_transitions_do_not_mutate(self):
        state = self.signed_in()
        navigation.navigate(state, Screen.PROFILE)
        self.assertEqual(state.screen, Screen.HOME)

    def test_navigate_accepts_screen_values(self):
        state = navigation.navigate(self.signed_in(), "booking")
        self.assertEqual(state.screen, Screen.BOOKING)


if __name__ == "__main__":
    unittest.main()
