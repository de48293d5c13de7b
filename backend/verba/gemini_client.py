from __future__ import annotations
import httpx
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from .errors import UpstreamError
from .settings import settings


@dataclass
class CompletionResult:
	text: str
	block_reason: Optional[str] = None
	finish_reason: Optional[str] = None
	raw: Dict[str, Any] = field(default_factory=dict)


def _parse_response(data: Dict[str, Any]) -> CompletionResult:
	feedback = data.get("promptFeedback") or {}
	block_reason = feedback.get("blockReason")
	candidates = data.get("candidates") or []
	if not candidates:
		return CompletionResult(text="", block_reason=block_reason, raw=data)
	candidate = candidates[0] or {}
	finish_reason = candidate.get("finishReason")
	if finish_reason in ("SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST") and not block_reason:
		block_reason = finish_reason
	parts = (candidate.get("content") or {}).get("parts") or []
	text = "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))
	return CompletionResult(text=text, block_reason=block_reason, finish_reason=finish_reason, raw=data)


class GeminiClient:
	def __init__(self, api_key: Optional[str] = None, *, base_url: Optional[str] = None, model: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	async def generate(self, prompt: str, *, generation_config: Optional[Dict[str, Any]] = None) -> CompletionResult:
		contents = [{"role": "user", "parts": [{"text": prompt}]}]
		return await self.generate_content(contents, generation_config=generation_config)

	async def generate_content(
		self,
		contents: List[Dict[str, Any]],
		*,
		system_instruction: Optional[str] = None,
		generation_config: Optional[Dict[str, Any]] = None,
	) -> CompletionResult:
		payload: Dict[str, Any] = {"contents": contents}
		if system_instruction:
			payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
		if generation_config:
			payload["generationConfig"] = generation_config
		return await self._post_payload(payload)

	async def _post_payload(self, payload: Dict[str, Any]) -> CompletionResult:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			status = http_err.response.status_code
			raise UpstreamError(
				f"Gemini returned HTTP {status}: {http_err.response.text}",
				status=status,
				raw=http_err.response.text,
			) from http_err
		except httpx.TimeoutException as timeout_err:
			raise UpstreamError(f"Gemini request timeout: {timeout_err}") from timeout_err
		except httpx.RequestError as net_err:
			raise UpstreamError(f"Gemini network error: {net_err}") from net_err
		try:
			data = r.json()
		except ValueError as err:
			raise UpstreamError(f"Unexpected Gemini response: {r.text}", raw=r.text) from err
		result = _parse_response(data)
		if result.finish_reason == "MAX_TOKENS" and not result.text.strip():
			raise UpstreamError("Gemini stopped with MAX_TOKENS before producing text", raw=data)
		return result

	async def aclose(self) -> None:
		await self._client.aclose()


_client: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
	"""Shared client handle; safe to reuse across requests."""
	global _client
	if _client is None:
		_client = GeminiClient()
	return _client


async def close_gemini_client() -> None:
	global _client
	if _client is not None:
		await _client.aclose()
		_client = None
