"""
VOLT Legal Analysis Pipeline
Validates requests, gathers document text and context, calls the LLM and
parses its reply into summary and red flags
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urljoin, urlparse
import ipaddress
import logging
import re
import socket
import time

import requests
from bs4 import BeautifulSoup
from langchain_community.llms import Ollama
from langchain_openai import ChatOpenAI
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import VoltConfig, default_config
from .prompts import (
    DOCUMENT_TYPES,
    VALID_TONES,
    build_analysis_prompt,
    build_chat_prompt,
    build_followup_prompt,
)
from .response_parser import parse_analysis_response

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[Content truncated due to length...]"
MAX_REDIRECTS = 5


class ValidationError(ValueError):
    """Request body failed validation; the message is safe to show users"""


class ContentFetchError(RuntimeError):
    """Document text could not be fetched from a URL"""


class AnalysisError(RuntimeError):
    """The language model call failed or returned nothing usable"""


@dataclass
class AnalysisRequest:
    legal_terms: Optional[str] = None
    input_url: Optional[str] = None
    tone: str = "serious"
    max_tokens: int = 2000
    temperature: float = 0.7
    document_type: str = "general"


@dataclass
class ChatRequest:
    question: str
    legal_text: str
    summary: List[Dict[str, str]] = field(default_factory=list)
    red_flags: List[str] = field(default_factory=list)
    document_type: str = "general"

    def context(self) -> Dict[str, Any]:
        return {
            "legal_text": self.legal_text,
            "summary": self.summary,
            "red_flags": self.red_flags,
            "document_type": self.document_type,
        }


@dataclass
class FollowUpRequest:
    document_text: str
    user_question: str
    conversation_history: List[Dict[str, str]] = field(default_factory=list)
    tone: str = "serious"


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_analysis_request(body: Any, config: VoltConfig = default_config) -> AnalysisRequest:
    """
    Validate an analysis request body

    Raises:
        ValidationError: with the message to return to the caller
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    limits = config.api
    has_text = _non_empty_string(body.get("legal_terms"))
    has_url = _non_empty_string(body.get("input_url"))

    if not has_text and not has_url:
        raise ValidationError("Either legal_terms or input_url is required")

    if has_text and has_url:
        raise ValidationError("Provide either legal_terms or input_url, not both")

    if has_text:
        length = len(body["legal_terms"])
        if length < limits.min_text_chars:
            raise ValidationError(f"legal_terms must be at least {limits.min_text_chars} characters long")
        if length > limits.max_text_chars:
            raise ValidationError(f"legal_terms must be less than {limits.max_text_chars:,} characters")

    if has_url:
        parsed = urlparse(body["input_url"].strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("Invalid URL format")

    tone = body.get("tone") or "serious"
    if tone not in VALID_TONES:
        raise ValidationError(f"Invalid tone. Must be one of: {', '.join(VALID_TONES)}")

    document_type = body.get("document_type") or "general"
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(f"Invalid document_type. Must be one of: {', '.join(DOCUMENT_TYPES)}")

    max_tokens = body.get("max_tokens")
    if max_tokens is None:
        max_tokens = config.llm.max_tokens
    if not _is_number(max_tokens) or not limits.min_max_tokens <= max_tokens <= limits.max_max_tokens:
        raise ValidationError(
            f"max_tokens must be a number between {limits.min_max_tokens} and {limits.max_max_tokens}"
        )

    temperature = body.get("temperature")
    if temperature is None:
        temperature = config.llm.temperature
    if not _is_number(temperature) or not 0 <= temperature <= 2:
        raise ValidationError("temperature must be a number between 0 and 2")

    return AnalysisRequest(
        legal_terms=body["legal_terms"].strip() if has_text else None,
        input_url=body["input_url"].strip() if has_url else None,
        tone=tone,
        max_tokens=int(max_tokens),
        temperature=float(temperature),
        document_type=document_type,
    )


def _validate_question(question: Any, field_name: str, config: VoltConfig) -> str:
    if not _non_empty_string(question):
        raise ValidationError(f"{field_name} is required and must be a non-empty string")
    if len(question) > config.api.max_question_chars:
        raise ValidationError(f"{field_name} must be less than {config.api.max_question_chars} characters")
    return question.strip()


def validate_chat_request(body: Any, config: VoltConfig = default_config) -> ChatRequest:
    """Validate a single-turn chat request about an analysed document"""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    question = _validate_question(body.get("question"), "Question", config)

    context = body.get("context")
    if not isinstance(context, dict):
        raise ValidationError("Context object is required")

    if not isinstance(context.get("legal_text"), str) or not context["legal_text"]:
        raise ValidationError("Context must include legal_text as a string")

    if not isinstance(context.get("summary"), list):
        raise ValidationError("Context must include summary as an array")

    if not isinstance(context.get("red_flags"), list):
        raise ValidationError("Context must include red_flags as an array")

    document_type = context.get("document_type") or "general"
    if not isinstance(document_type, str):
        raise ValidationError("Document type must be a string")

    return ChatRequest(
        question=question,
        legal_text=context["legal_text"],
        summary=context["summary"],
        red_flags=context["red_flags"],
        document_type=document_type,
    )


def validate_followup_request(body: Any, config: VoltConfig = default_config) -> FollowUpRequest:
    """Validate a multi-turn chat request"""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    if not _non_empty_string(body.get("document_text")):
        raise ValidationError("document_text is required and must be a string")

    question = _validate_question(body.get("user_question"), "user_question", config)

    history = body.get("conversation_history")
    if not isinstance(history, list):
        raise ValidationError("conversation_history must be an array")

    tone = body.get("tone") or "serious"
    if tone not in VALID_TONES:
        raise ValidationError(f"Invalid tone. Must be one of: {', '.join(VALID_TONES)}")

    messages = [
        {"role": str(m.get("role", "user")), "content": str(m.get("content", ""))}
        for m in history if isinstance(m, dict)
    ]

    return FollowUpRequest(
        document_text=body["document_text"].strip(),
        user_question=question,
        conversation_history=messages,
        tone=tone,
    )


def _is_internal(ip_addr) -> bool:
    ip_addr = getattr(ip_addr, "ipv4_mapped", None) or ip_addr
    return (ip_addr.is_private or ip_addr.is_loopback or ip_addr.is_link_local
            or ip_addr.is_reserved or ip_addr.is_unspecified or ip_addr.is_multicast)


def _check_public_host(hostname: str):
    """Refuse hosts that are, or resolve to, internal addresses"""
    if not hostname:
        raise ContentFetchError("URL has no host")

    try:
        addresses = [ipaddress.ip_address(hostname)]
    except ValueError:
        try:
            infos = socket.getaddrinfo(hostname, None)
        except socket.gaierror as e:
            # DNS resolution failed; the request itself will report it
            logger.warning(f"Could not resolve {hostname}: {e}")
            return
        addresses = [ipaddress.ip_address(info[4][0].split('%')[0]) for info in infos]

    for ip_addr in addresses:
        if _is_internal(ip_addr):
            raise ContentFetchError(f"Access to internal IP address {ip_addr} is blocked")


def _validate_url(url: str, config: VoltConfig):
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ContentFetchError(f"Invalid URL: {url}")
    if config.api.block_internal_ips:
        _check_public_host(parsed.hostname)


def _extract_text(content: bytes, content_type: str) -> str:
    if "html" in content_type or not content_type:
        soup = BeautifulSoup(content, "html.parser")
        # Remove script and style elements
        for element in soup(["script", "style", "noscript"]):
            element.decompose()
        text = soup.get_text(" ")
    else:
        text = content.decode("utf-8", errors="replace")
    return re.sub(r"\s+", " ", text).strip()


def _read_limited(response, max_bytes: int) -> bytes:
    content_length = response.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        raise ContentFetchError(f"Content too large: {content_length} bytes (limit {max_bytes})")

    content = b""
    for chunk in response.iter_content(chunk_size=8192):
        content += chunk
        if len(content) > max_bytes:
            raise ContentFetchError(f"Content too large: more than {max_bytes} bytes")
    return content


def fetch_url_content(url: str,
                      config: VoltConfig = default_config,
                      session: Optional[requests.Session] = None) -> str:
    """
    Fetch a web page and return its readable text

    Redirects are followed by hand so every hop is checked against the
    internal-address block. Text longer than the input limit is truncated
    with a marker.

    Raises:
        ContentFetchError: on network/HTTP failure, oversized or internal
            targets, or when too little text remains
    """
    logger.info(f"Fetching content from URL: {url}")

    _validate_url(url, config)

    if session is None:
        # Set up session with retries
        session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

    headers = {
        'User-Agent': 'Mozilla/5.0 (compatible; VOLT-Legal-Analyzer/1.0)',
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,text/plain;q=0.8,*/*;q=0.5',
        'Accept-Language': 'en-US,en;q=0.5',
    }

    try:
        for _ in range(MAX_REDIRECTS + 1):
            response = session.get(url, timeout=config.api.request_timeout, headers=headers,
                                   stream=True, allow_redirects=False)
            if not response.is_redirect:
                break
            location = response.headers.get("location")
            response.close()
            url = urljoin(url, location)
            logger.info(f"Following redirect to {url}")
            _validate_url(url, config)
        else:
            raise ContentFetchError(f"Too many redirects (more than {MAX_REDIRECTS})")

        try:
            response.raise_for_status()
            content = _read_limited(response, config.api.max_download_bytes)
        finally:
            response.close()
    except requests.Timeout:
        raise ContentFetchError("Request timeout: The URL took too long to respond")
    except requests.RequestException as e:
        raise ContentFetchError(f"Failed to fetch URL: {e}")

    content_type = response.headers.get("content-type", "").lower()
    text = _extract_text(content, content_type)
    logger.info(f"Fetched content length: {len(text)} ({content_type or 'unknown type'})")

    if len(text) < config.api.min_text_chars:
        raise ContentFetchError(
            f"Extracted text is too short (less than {config.api.min_text_chars} characters)"
        )

    max_length = config.api.max_text_chars
    if len(text) > max_length:
        logger.info(f"Content too long ({len(text)} chars), truncating to {max_length}")
        text = text[:max_length] + TRUNCATION_MARKER

    return text


def fetch_contract_examples(document_type: str, config: VoltConfig = default_config) -> List[str]:
    """
    Fetch example contract chunks for a document type

    Returns an empty list when the store is not configured or unreachable;
    analysis works without examples.
    """
    store = config.glossary
    if not store.supabase_url or not store.supabase_key:
        return []

    url = f"{store.supabase_url.rstrip('/')}/rest/v1/{store.examples_table}"
    headers = {
        "apikey": store.supabase_key,
        "Authorization": f"Bearer {store.supabase_key}",
        "Content-Type": "application/json",
    }
    params = {
        "doc_type": f"eq.{document_type}",
        "order": "chunk_index.asc",
        "limit": str(store.examples_limit),
    }

    try:
        response = requests.get(url, headers=headers, params=params, timeout=config.api.request_timeout)
        response.raise_for_status()
        chunks = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Error fetching contract chunks: {str(e)}")
        return []

    texts = [c.get("chunk_text", "") for c in chunks if isinstance(c, dict) and c.get("chunk_text")]
    logger.info(f"Fetched {len(texts)} chunks for {document_type}")
    return texts


class LegalAnalyzer:
    """
    Runs document analysis and document chat against the configured LLM
    """

    def __init__(self,
                 config: Optional[VoltConfig] = None,
                 llm=None,
                 example_fetcher: Optional[Callable[[str], List[str]]] = None):
        """
        Initialize analyzer

        Args:
            config: Configuration; the default configuration when None
            llm: Optional prebuilt LangChain model (chat model or LLM)
            example_fetcher: Optional callable returning example chunks for a document type
        """
        self.config = config or default_config
        self.llm = llm if llm is not None else self._init_llm()
        self.example_fetcher = example_fetcher or (
            lambda document_type: fetch_contract_examples(document_type, self.config)
        )

    def _init_llm(self):
        """Initialize language model"""
        llm_config = self.config.llm
        if llm_config.api_key:
            logger.info(f"Using {llm_config.model} via {llm_config.base_url}")
            return ChatOpenAI(
                model=llm_config.model,
                api_key=llm_config.api_key,
                base_url=llm_config.base_url,
                temperature=llm_config.temperature,
                max_tokens=llm_config.max_tokens,
                timeout=llm_config.timeout,
                default_headers={
                    "HTTP-Referer": llm_config.referer,
                    "X-Title": llm_config.app_title,
                },
            )
        else:
            logger.info(f"No API key configured, using Ollama {llm_config.ollama_model}")
            return Ollama(
                model=llm_config.ollama_model,
                temperature=llm_config.temperature,
            )

    def _invoke(self, prompt: str, max_tokens: int, temperature: float) -> str:
        llm = self.llm
        if isinstance(llm, ChatOpenAI):
            llm = llm.bind(max_tokens=max_tokens, temperature=temperature)
        elif isinstance(llm, Ollama):
            # Ollama names the completion limit num_predict
            llm = llm.bind(num_predict=max_tokens, temperature=temperature)

        try:
            response = llm.invoke(prompt)
        except Exception as e:
            logger.error(f"Error calling language model: {str(e)}")
            raise AnalysisError(f"API Error: {e}") from e

        content = getattr(response, "content", response)
        if not isinstance(content, str) or not content.strip():
            logger.error("Language model returned an empty response")
            raise AnalysisError("Invalid response format from language model")
        return content.strip()

    def analyze(self, request: AnalysisRequest) -> Dict[str, Any]:
        """
        Analyze a document

        Args:
            request: Validated analysis request

        Returns:
            Dictionary with summary, red flags, assessment and metadata

        Raises:
            ContentFetchError: if the document URL cannot be read
            AnalysisError: if the language model call fails
        """
        start_time = time.time()

        if request.input_url:
            legal_text = fetch_url_content(request.input_url, self.config)
        else:
            legal_text = request.legal_terms or ""

        examples = self.example_fetcher(request.document_type)
        prompt = build_analysis_prompt(legal_text, request.tone, request.document_type, examples)
        logger.info(f"Built prompt, length: {len(prompt)}, examples: {len(examples)}")

        analysis_text = self._invoke(prompt, request.max_tokens, request.temperature)
        sections = parse_analysis_response(analysis_text)

        processing_time = int((time.time() - start_time) * 1000)
        logger.info(
            f"Analysis complete: {len(sections.red_flags)} red flags in {processing_time} ms"
        )

        return {
            **sections.to_dict(),
            "analysis_text": analysis_text,
            "legal_text": legal_text,
            "tone_used": request.tone,
            "document_type": request.document_type,
            "processing_time_ms": processing_time,
            "chunks_used": len(examples),
        }

    def chat(self, request: ChatRequest) -> Dict[str, Any]:
        """Answer a question about an analysed document"""
        start_time = time.time()
        prompt = build_chat_prompt(request.question, request.context(), self.config.api.chat_context_chars)
        answer = self._invoke(prompt, self.config.llm.chat_max_tokens, self.config.llm.temperature)
        return {
            "answer": answer,
            "processing_time_ms": int((time.time() - start_time) * 1000),
        }

    def follow_up(self, request: FollowUpRequest) -> str:
        """Answer the next question in a multi-turn conversation"""
        prompt = build_followup_prompt(
            request.document_text,
            request.conversation_history,
            request.user_question,
            request.tone,
        )
        return self._invoke(prompt, self.config.llm.chat_max_tokens, self.config.llm.temperature)
