from verba.errors import UpstreamError
from verba.gemini_client import CompletionResult
from verba.models import User
from verba.routers.onboarding import COMPLETE_REPLY, FALLBACK_REPLY


def _post(client, headers, message, history=None):
	return client.post(
		"/onboarding/chat",
		json={"message": message, "conversationHistory": history or []},
		headers=headers,
	)


class TestOnboardingChat:
	def test_requires_token(self, client):
		response = client.post("/onboarding/chat", json={"message": "hi", "conversationHistory": []})
		assert response.status_code == 401
		assert response.json() == {"error": "Unauthorized"}

	def test_rejects_bad_token(self, client):
		response = _post(client, {"Authorization": "Bearer not-a-jwt"}, "hi")
		assert response.status_code == 401
		assert response.json() == {"error": "Invalid token"}

	def test_goal_and_level_runs_both_subflows(self, client, gemini, make_user, auth_headers, db):
		user = make_user()
		gemini.queue(
			"goal and level have been set",
			"goal and level",
			"I want to travel to London.",
			"Beginner",
		)

		response = _post(client, auth_headers(user), "i want travel london, im beginer")

		assert response.status_code == 200
		body = response.json()
		assert body["message"] == COMPLETE_REPLY
		assert body["onboardingComplete"] is True
		assert body["user"]["goal"] == "I want to travel to London."
		assert body["user"]["level"] == "Beginner"
		prompts = gemini.prompts()
		assert len(prompts) == 4
		assert "Respond with one of" in prompts[1]
		assert "helpful text cleaner" in prompts[2]
		assert "classify the implied English level" in prompts[3]
		db.expire_all()
		stored = db.get(User, user.id)
		assert (stored.goal, stored.level) == ("I want to travel to London.", "Beginner")

	def test_goal_only_asks_for_level(self, client, gemini, make_user, auth_headers):
		user = make_user()
		gemini.queue("Nice goal! What's your level?", "goal", "I want to pass IELTS.")

		body = _post(client, auth_headers(user), "pass ielts").json()

		assert body["message"] == "Nice goal! What's your level?"
		assert body["onboardingComplete"] is False
		assert body["user"]["goal"] == "I want to pass IELTS."
		assert body["user"]["level"] is None

	def test_none_leaves_profile_untouched(self, client, gemini, make_user, auth_headers):
		user = make_user()
		gemini.queue("Hello! What's your goal?", "none")

		body = _post(client, auth_headers(user), "hello").json()

		assert body["message"] == "Hello! What's your goal?"
		assert body["user"]["goal"] is None
		assert len(gemini.calls) == 2

	def test_completed_user_skips_classification(self, client, gemini, make_user, auth_headers):
		user = make_user(goal="Travel", level="Advanced")
		gemini.queue("Type lets go to start the first lesson")

		body = _post(client, auth_headers(user), "ok").json()

		assert body["onboardingComplete"] is True
		assert len(gemini.calls) == 1

	def test_history_is_mapped_before_the_new_message(self, client, gemini, make_user, auth_headers):
		user = make_user(goal="Travel", level="Advanced")
		gemini.queue("Sure")
		history = [
			{"role": "assistant", "content": "Hi Sara! What's your goal?"},
			{"role": "user", "content": "Travel"},
		]

		_post(client, auth_headers(user), "ok", history)

		call = gemini.calls[0]
		assert [c["role"] for c in call["contents"]] == ["model", "user", "user"]
		assert call["contents"][-1]["parts"][0]["text"] == "ok"
		assert "onboarding Sara" in call["system_instruction"]
		assert call["generation_config"]["maxOutputTokens"] == 300

	def test_empty_reply_uses_fallback(self, client, gemini, make_user, auth_headers):
		user = make_user(goal="Travel", level="Advanced")
		gemini.queue("")

		body = _post(client, auth_headers(user), "ok").json()

		assert body["message"] == FALLBACK_REPLY

	def test_transient_errors_are_retried(self, client, gemini, make_user, auth_headers):
		user = make_user(goal="Travel", level="Advanced")
		gemini.queue(UpstreamError("overloaded", status=503), "Back again")

		body = _post(client, auth_headers(user), "ok").json()

		assert body["message"] == "Back again"
		assert len(gemini.calls) == 2

	def test_rate_limit_surfaces_after_retries(self, client, gemini, make_user, auth_headers):
		user = make_user(goal="Travel", level="Advanced")
		gemini.queue(*[UpstreamError("slow down", status=429) for _ in range(4)])

		response = _post(client, auth_headers(user), "ok")

		assert response.status_code == 429
		assert len(gemini.calls) == 4

	def test_blocked_reply_is_400(self, client, gemini, make_user, auth_headers):
		user = make_user(goal="Travel", level="Advanced")
		gemini.queue(CompletionResult(text="", block_reason="SAFETY"))

		response = _post(client, auth_headers(user), "something rude")

		assert response.status_code == 400
		assert response.json() == {"error": "Content blocked by safety guidelines"}

	def test_empty_classifier_answer_counts_as_none(self, client, gemini, make_user, auth_headers):
		user = make_user()
		gemini.queue("Hello! What's your goal?", "")

		response = _post(client, auth_headers(user), "hello")

		assert response.status_code == 200
		body = response.json()
		assert body["message"] == "Hello! What's your goal?"
		assert body["onboardingComplete"] is False
		assert body["user"]["goal"] is None

	def test_empty_level_answer_leaves_level_unset(self, client, gemini, make_user, auth_headers, db):
		user = make_user(goal="Travel")
		gemini.queue("Thanks!", "level", "")

		response = _post(client, auth_headers(user), "i speak a little")

		assert response.status_code == 200
		body = response.json()
		assert body["message"] == "Thanks!"
		assert body["onboardingComplete"] is False
		assert body["user"]["level"] is None
		db.expire_all()
		assert db.get(User, user.id).level is None
