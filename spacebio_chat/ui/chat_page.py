"""NiceGUI chat page rendering a ChatSessionController."""

from nicegui import ui

from spacebio_chat.models.schemas import MessageRole
from spacebio_chat.ui.session import ChatSessionController, relative_time

CUSTOM_CSS = """
<style>
    .message-user { background: #4f46e5; color: white; border-radius: 18px 18px 4px 18px; }
    .message-assistant { background: #f3f4f6; color: #1f2937; border-radius: 18px 18px 18px 4px; }
</style>
"""


def render_bubble(role: MessageRole, content: str, caption: str | None = None) -> None:
    is_user = role == MessageRole.USER
    align = "justify-end" if is_user else "justify-start"
    bubble = "message-user" if is_user else "message-assistant"

    with ui.row().classes(f"w-full {align}"):
        with ui.column().classes("max-w-[75%] gap-1"):
            with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                if is_user:
                    ui.label(content).classes("text-sm whitespace-pre-wrap")
                else:
                    ui.markdown(content).classes("text-sm")
            if caption:
                ui.label(caption).classes("text-[10px] text-gray-400")


@ui.page("/")
def chat_page() -> None:
    """Main chat page."""
    ui.add_head_html(CUSTOM_CSS)
    controller = ChatSessionController()

    @ui.refreshable
    def messages_view() -> None:
        if not controller.messages and not controller.busy:
            with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                ui.icon("science").classes("text-5xl text-gray-300")
                ui.label("Ask about space biology research").classes("text-lg text-gray-400")
            return

        for msg in controller.messages:
            render_bubble(msg.role, msg.content, relative_time(msg.timestamp))

        if controller.busy:
            if controller.streaming_text:
                render_bubble(MessageRole.ASSISTANT, controller.streaming_text)
            else:
                with ui.row().classes("w-full justify-start"):
                    ui.spinner("dots", size="lg").classes("text-indigo-500")

    async def send_message() -> None:
        text = input_field.value or ""
        if not text.strip() or not controller.can_send:
            return
        input_field.value = ""
        await controller.send(text)
        if controller.last_error:
            ui.notify(controller.last_error, type="negative")

    def sync_controls() -> None:
        send_btn.set_enabled(controller.can_send)
        clear_btn.set_enabled(controller.can_send)
        messages_view.refresh()

    with ui.column().classes("w-full max-w-3xl mx-auto").style("height: calc(100vh - 2rem)"):
        with ui.row().classes("w-full px-5 py-4 items-center justify-between border-b"):
            with ui.column().classes("gap-0"):
                ui.label("Space Biology AI").classes("text-lg font-semibold")
                ui.label("Powered by LlamaIndex").classes("text-xs text-gray-500")
            clear_btn = ui.button(icon="delete_sweep", on_click=controller.clear).props("flat round")

        with ui.scroll_area().classes("flex-grow w-full"):
            with ui.column().classes("w-full p-5 gap-4"):
                messages_view()

        with ui.row().classes("w-full p-4 gap-3 items-end border-t"):
            input_field = (
                ui.textarea(placeholder="Ask about space biology research...")
                .props("autogrow dense rows=1")
                .classes("flex-grow")
                .on("keydown.enter.prevent", send_message)
            )
            send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")

    controller.subscribe(sync_controls)
    sync_controls()
    # Sends stay disabled until the history reset has resolved
    ui.timer(0, controller.load_history, once=True)


def main() -> None:
    ui.run(title="Space Biology AI", port=8080, reload=False)


if __name__ == "__main__":
    main()
