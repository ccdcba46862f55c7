"""
Prompt templates for transcript summarization.

Each ``SummaryMode`` picks a system prompt describing the conversation type
and the sections to produce; the ``SummaryLength`` instruction and a shared
formatting rule block are appended to every template.
"""

from voicenotes.core.models import SummaryLength, SummaryMode

FORMAT_RULES = (
    "Output must be plain text. No markdown headings (#). Put bold labels with "
    "double asterisks on their own line, then one blank line. One blank line "
    "between sections. Use bullets '• '. Omit empty sections. Keep the "
    "transcript's language. Do not invent facts, owners, or deadlines."
)

_MODE_PROMPTS: dict[SummaryMode, str] = {
    SummaryMode.personal: (
        "Summarize this transcript in a clear and structured way. Start with a brief "
        "context: who the speakers are and what the topic is. Highlight the main points "
        "discussed and extract themes, decisions, questions and next steps. Keep it "
        "factual; do not add information that isn't in the transcript."
    ),
    SummaryMode.meeting: (
        "Summarize this meeting. Identify the participants and the purpose of the "
        "meeting, then the topics discussed, the decisions taken and the open questions. "
        "Use sections: **Meeting Context**, **Discussion**, **Decisions**, "
        "**Action Items**."
    ),
    SummaryMode.tech_team: (
        "Summarize this technical team meeting. Capture the technical topics, "
        "architecture decisions, development priorities and outstanding questions. "
        "Do not add technical assumptions not stated in the meeting. Use sections: "
        "**Meeting Context**, **Technical Discussion**, **Key Decisions**, "
        "**Action Items**, **Next Steps**."
    ),
    SummaryMode.planning: (
        "Summarize this planning session. Capture the project scope, milestones, "
        "resource allocations and timeline decisions. Do not add project assumptions "
        "not stated in the session. Use sections: **Project Context**, "
        "**Planning Discussion**, **Key Milestones**, **Resource Decisions**, "
        "**Action Items**."
    ),
    SummaryMode.brainstorm: (
        "Summarize this brainstorming session. Capture the challenge being addressed, "
        "the ideas proposed and the most promising directions. Do not add ideas that "
        "were not actually proposed. Use sections: **Session Context**, "
        "**Creative Challenge**, **Ideas Generated**, **Promising Concepts**, "
        "**Next Steps**."
    ),
    SummaryMode.lecture: (
        "Summarize this educational session. Capture the learning objectives, key "
        "concepts, examples and learning outcomes. Do not add content that was not "
        "presented. Use sections: **Learning Context**, **Key Concepts**, "
        "**Main Teaching Points**, **Examples Provided**, **Learning Outcomes**."
    ),
    SummaryMode.interview: (
        "Summarize this interview. Identify the interviewer, the interviewee and the "
        "topic, then the key questions, the significant answers and any follow-up "
        "items. Do not add interpretations not stated in the interview. Use sections: "
        "**Interview Context**, **Key Questions**, **Main Responses**, "
        "**Important Insights**, **Follow-up Items**."
    ),
}


def system_prompt(mode: SummaryMode, length: SummaryLength) -> str:
    """Build the system prompt for one summary request."""
    return f"{_MODE_PROMPTS[mode]} {length.instruction} {FORMAT_RULES}"


def summary_prompt(transcript: str) -> str:
    return (
        "Summarize the following transcript using the format specified above.\n\n"
        f'Transcript:\n"""{transcript}"""'
    )


def chunk_prompt(chunk: str, index: int, total: int) -> str:
    """User prompt for one slice of an oversized transcript."""
    return (
        f"This is part {index + 1} of {total} of a long transcript. Summarize only this "
        "part; another pass will merge the parts.\n\n"
        f'Transcript part:\n"""{chunk}"""'
    )


def combine_prompt(partials: list[str]) -> str:
    """User prompt for the single pass that merges partial summaries."""
    parts = "\n\n".join(
        f"--- Part {i + 1} ---\n{summary}" for i, summary in enumerate(partials)
    )
    return (
        "The following are summaries of consecutive parts of one long transcript. "
        "Merge them into one coherent summary using the format specified above: "
        "remove duplicates, keep chronological order and resolve overlaps.\n\n"
        f"{parts}"
    )
