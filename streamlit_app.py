"""Marketing Assistant - Streamlit App with Chat UI."""

import json
import os
import streamlit as st
from config.settings import Settings
from memory.session import ChatSession, InvalidInputError, TurnInProgressError
from memory.snapshot_store import SnapshotStore
from memory.sqlite_store import SQLiteKeyValueStore
from schemas.messages import Message, MessageStatus, Role, duration_key
from schemas.parts import ReasoningPart, TextPart, ToolCallPart, ToolResultPart, ToolCallState


QUICK_START_QUESTIONS = [
    (
        "Create a 1-week Instagram plan for my bakery",
        "Create a detailed 1-week Instagram content plan for my neighborhood bakery, "
        "including post ideas, captions, and basic hashtags. Focus only on digital marketing tactics.",
    ),
    (
        "Use a ₹10,000 digital marketing budget wisely",
        "I have a ₹10,000 monthly DIGITAL MARKETING budget for my small business. Propose a split "
        "across online channels like paid ads, social media content, email/WhatsApp marketing, "
        "and SEO, with clear percentages and reasoning.",
    ),
    (
        "Write a welcome email for new customers",
        "Write a warm, friendly welcome email for new customers who joined my email list after "
        "seeing my online ads or social media posts. Keep it short and marketing-focused.",
    ),
    (
        "Give me 5 post ideas for my café's Google Business Profile",
        "Give me 5 post ideas for my café's Google Business Profile to increase visits, reviews, "
        "and online visibility. Focus only on digital marketing ideas.",
    ),
]

TOOL_LABELS = {
    "webSearch": "Searching the web",
    "vectorDatabaseSearch": "Searching the knowledge base",
    "generateImage": "Generating an image",
}


st.set_page_config(
    page_title="MyAI3 Marketing Assistant",
    page_icon="📈",
    layout="wide"
)


def build_session(settings: Settings, api_url: str) -> ChatSession:
    """Create a chat session bound to the persisted snapshot."""
    store = SnapshotStore(SQLiteKeyValueStore(settings.db_path), key=settings.storage_key)
    if api_url:
        from client import ChatClient
        transport = ChatClient(api_url)
    else:
        from orchestrator import ChatOrchestrator
        transport = ChatOrchestrator(settings).run_turn
    return ChatSession(
        transport=transport,
        store=store,
        welcome_message=settings.welcome_message,
        max_message_chars=settings.max_message_chars
    )


def render_part(message: Message, index: int, part, durations: dict):
    """Render one message part."""
    if isinstance(part, TextPart):
        st.markdown(part.text)
    elif isinstance(part, ReasoningPart):
        took = durations.get(duration_key(message.id, index), part.duration_ms)
        label = f"Thought for {took / 1000:.1f}s" if took is not None else "Thinking..."
        with st.expander(label, expanded=False):
            st.markdown(part.text)
    elif isinstance(part, ToolCallPart):
        if message.result_for(part.call_id) is not None:
            return
        label = TOOL_LABELS.get(part.tool_name, f"Running {part.tool_name}")
        suffix = "..." if part.state == ToolCallState.INPUT_AVAILABLE else " (preparing)"
        st.caption(f"🔧 {label}{suffix}")
    elif isinstance(part, ToolResultPart):
        label = TOOL_LABELS.get(part.tool_name, part.tool_name)
        if part.is_error:
            st.warning(f"{label} failed: {part.error}")
            return
        if part.tool_name == "generateImage" and isinstance(part.output, dict) and part.output.get("image_url"):
            st.image(part.output["image_url"], caption=part.output.get("prompt_used"))
            return
        with st.expander(f"✅ {label}", expanded=False):
            st.code(json.dumps(part.output, indent=2, default=str), language="json")


def render_message(message: Message, durations: dict):
    """Render a message with its status footer."""
    for index, part in enumerate(message.parts):
        render_part(message, index, part, durations)
    if message.status == MessageStatus.FAILED:
        st.error("Something went wrong with this reply. Please try again.")
    elif message.status == MessageStatus.CANCELLED:
        st.caption("⏹ Stopped")


# Sidebar configuration
st.sidebar.header("Configuration")

llm_provider = st.sidebar.selectbox(
    "LLM Provider",
    options=["openai", "anthropic"],
    index=0,
    help="Select which LLM answers the chat"
)

openai_api_key = st.sidebar.text_input(
    "OpenAI API Key",
    value=os.environ.get("OPENAI_API_KEY", ""),
    type="password",
    help="Required for OpenAI provider, moderation and knowledge base search"
)

anthropic_api_key = st.sidebar.text_input(
    "Anthropic API Key",
    value=os.environ.get("ANTHROPIC_API_KEY", ""),
    type="password",
    help="Required for Anthropic provider"
)

st.sidebar.markdown("---")

with st.sidebar.expander("Advanced Settings"):
    max_steps = st.slider(
        "Max tool steps per reply",
        min_value=1,
        max_value=10,
        value=10
    )

    api_url = st.text_input(
        "Chat API URL",
        value="",
        placeholder="http://localhost:8000/api/chat",
        help="Leave empty to answer in-process"
    )

    image_generation_enabled = st.checkbox(
        "Enable image generation",
        value=False
    )

    show_debug = st.checkbox("Show debug info", value=False)

settings = Settings(
    llm_provider=llm_provider,
    openai_api_key=openai_api_key if openai_api_key else None,
    anthropic_api_key=anthropic_api_key if anthropic_api_key else None,
    max_steps=max_steps,
    image_generation_enabled=image_generation_enabled,
)

config_key = (llm_provider, openai_api_key, anthropic_api_key, max_steps, api_url, image_generation_enabled)
if st.session_state.get("config_key") != config_key:
    st.session_state.session = build_session(settings, api_url)
    st.session_state.config_key = config_key

session: ChatSession = st.session_state.session

if st.sidebar.button("Clear Chat", type="secondary"):
    try:
        session.reset()
    except TurnInProgressError as e:
        st.sidebar.warning(str(e))
    st.rerun()

st.sidebar.markdown("---")
st.sidebar.caption(f"Messages: {len(session.messages)}")
if show_debug:
    st.sidebar.caption(f"Storage key: {settings.storage_key}")

# Main content
st.title(f"{settings.ai_name} Marketing Assistant")
st.markdown("Digital marketing help for small businesses and solopreneurs")

for message in session.messages:
    with st.chat_message(message.role.value):
        render_message(message, session.durations)

has_user_messages = any(m.role == Role.USER for m in session.messages)

pending = None
if not has_user_messages:
    st.markdown("**Great first questions:**")
    columns = st.columns(len(QUICK_START_QUESTIONS))
    for column, (label, text) in zip(columns, QUICK_START_QUESTIONS):
        if column.button(label, use_container_width=True):
            pending = text

prompt = st.chat_input(
    "Ask about Instagram, ads, SEO, email...",
    max_chars=settings.max_message_chars
)
if prompt:
    pending = prompt

if pending:
    with st.chat_message("user"):
        st.markdown(pending)

    with st.chat_message("assistant"):
        placeholder = st.empty()

        def on_update(message: Message):
            with placeholder.container():
                render_message(message, {})

        try:
            session.submit(pending, on_update=on_update)
        except InvalidInputError as e:
            st.warning(str(e))
        except TurnInProgressError as e:
            st.info(str(e))
        else:
            st.rerun()

# Footer
st.sidebar.markdown("---")
st.sidebar.markdown("Built with Streamlit")
