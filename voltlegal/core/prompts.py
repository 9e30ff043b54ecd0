"""
VOLT Legal Prompt Templates
Tone instructions and prompt builders for document analysis and chat
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from langchain_core.prompts import PromptTemplate

DOCUMENT_TYPES = ["general", "lease", "employment"]

TONE_PROMPTS = {
    "serious": "Speak in a calm, precise, and emotionally neutral tone. Deliver facts and observations with clarity and composure.",
    "sarcastic": "Adopt a dry, witty tone that questions the logic of things. Layer your words with irony and a hint of disdain, but stay clever, not cruel.",
    "meme": "Turn up the absurdity and exaggeration. Use over-the-top expressions, internet lingo, and break the fourth wall for comedic effect.",
    "ominous": "Use a deep, chilling tone that builds suspense. Speak slowly, with gravity, as if something powerful or terrible is about to unfold.",
    "child": "Use simple, cheerful language full of wonder and excitement. Be clear, repetitive, and encouraging, like you're teaching a new concept to a young learner.",
    "academic": "Be formal, methodical, and intellectually rigorous. Structure ideas clearly, define key terms, and maintain an analytical perspective throughout.",
    "authoritative": "Project strength and confidence. Use assertive language, direct commands, and minimal fluff. You're here to lead, not ask.",
    "wizard": "Use grand, poetic language that suggests ancient knowledge and mystery. Speak with awe, depth, and rhythm, as if unveiling truths from another realm.",
}

VALID_TONES = list(TONE_PROMPTS)

ANALYSIS_PROMPT = """You are a legal expert specializing in analyzing {document_type} contracts. {tone_instruction}

{examples_section}Analyze the following legal terms and provide:

1. A comprehensive summary paragraph that covers all key points, including the main clauses, rights, and obligations relevant to this type of contract.
2. A list of potential red flags or concerning clauses specific to this contract type (e.g., payment terms, penalties, early termination, confidentiality, dispute resolution). A minimum of one red flag should be identified.
3. An overall assessment of the contract's fairness, clarity, and any areas that may require further negotiation or legal review.

Legal terms to analyze:
{legal_text}

Please structure your response as follows:
SUMMARY:
[Write a single comprehensive paragraph that explains the main clauses, obligations, and important aspects of the contract in plain language. Focus on what the terms mean for the parties involved.]

RED FLAGS:
- [Red flag 1]
- [etc (add more points as needed)]

OVERALL ASSESSMENT:
[Provide an overall assessment of the contract, including its strengths, weaknesses, and whether it is balanced and fair. Suggest if any terms should be negotiated or clarified.]

Remember to maintain the {tone} tone throughout your analysis."""

CHAT_PROMPT = """You are V.O.L.T Assistant, a helpful AI legal assistant specializing in contract analysis. You have already analyzed a {document_type} document for the user.

DOCUMENT CONTEXT:
Document Type: {document_type}

Summary of Key Points:
{summary_text}

Identified Red Flags:
- {red_flags_text}

Original Legal Text (for reference):
{legal_text}

USER QUESTION: {question}

Please provide a helpful, accurate response based on the analyzed document. Be conversational but professional. If the question is about something not covered in the document, politely explain that you can only help with questions about the analyzed document. Keep your response concise but informative.

Response:"""

FOLLOWUP_PROMPT = """You are a legal assistant chatbot specializing in analyzing and explaining legal documents. {tone_instruction}

Your task is to answer questions about the following legal document. Provide helpful, accurate information while maintaining the specified tone.

Document to reference:
{document_text}{conversation_context}

Current user question: {question}

Please provide a helpful response that directly addresses the user's question about the document. Keep your response concise but informative, and maintain the {tone} tone throughout."""

analysis_template = PromptTemplate(
    template=ANALYSIS_PROMPT,
    input_variables=["document_type", "tone_instruction", "examples_section", "legal_text", "tone"]
)

chat_template = PromptTemplate(
    template=CHAT_PROMPT,
    input_variables=["document_type", "summary_text", "red_flags_text", "legal_text", "question"]
)

followup_template = PromptTemplate(
    template=FOLLOWUP_PROMPT,
    input_variables=["tone_instruction", "document_text", "conversation_context", "question", "tone"]
)


def _examples_section(examples: Iterable[str]) -> str:
    examples = [e for e in examples if e and e.strip()]
    if not examples:
        return ""
    joined = "\n\n".join(f"Example {i + 1}: {chunk}" for i, chunk in enumerate(examples))
    return f"Use the following examples for context and structure:\n{joined}\n\nBased on these examples, "


def build_analysis_prompt(legal_text: str,
                          tone: str = "serious",
                          document_type: str = "general",
                          examples: Optional[Iterable[str]] = None) -> str:
    """
    Build the analysis prompt

    Args:
        legal_text: Contract text to analyze
        tone: One of VALID_TONES
        document_type: One of DOCUMENT_TYPES
        examples: Retrieved contract chunks used as context

    Returns:
        Prompt asking for SUMMARY / RED FLAGS / OVERALL ASSESSMENT sections
    """
    return analysis_template.format(
        document_type=document_type,
        tone_instruction=TONE_PROMPTS.get(tone, TONE_PROMPTS["serious"]),
        examples_section=_examples_section(examples or []),
        legal_text=legal_text,
        tone=tone,
    )


def build_chat_prompt(question: str, context: Mapping[str, Any], context_chars: int = 1500) -> str:
    """Build a single-turn assistant prompt from an analysed document"""
    summary_text = "\n".join(
        f"{item.get('title', '')}: {item.get('description', '')}"
        for item in context.get("summary", [])
        if isinstance(item, Mapping)
    )
    red_flags_text = "\n- ".join(str(flag) for flag in context.get("red_flags", []))

    legal_text = context.get("legal_text", "")
    if len(legal_text) > context_chars:
        legal_text = legal_text[:context_chars] + "..."

    return chat_template.format(
        document_type=context.get("document_type", "general"),
        summary_text=summary_text,
        red_flags_text=red_flags_text,
        legal_text=legal_text,
        question=question,
    )


def build_followup_prompt(document_text: str,
                          conversation_history: List[Dict[str, str]],
                          question: str,
                          tone: str = "serious") -> str:
    """Build a multi-turn chat prompt that replays the conversation so far"""
    conversation_context = ""
    if conversation_history:
        lines = []
        for message in conversation_history:
            speaker = "User" if message.get("role") == "user" else "Assistant"
            lines.append(f"{speaker}: {message.get('content', '')}")
        conversation_context = "\n\nPrevious conversation:\n" + "\n".join(lines)

    return followup_template.format(
        tone_instruction=TONE_PROMPTS.get(tone, TONE_PROMPTS["serious"]),
        document_text=document_text,
        conversation_context=conversation_context,
        question=question,
        tone=tone,
    )
