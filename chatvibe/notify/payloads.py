def build_notification(chat_id: int, chat_title: str, ok: bool = True) -> dict:
    """Local-notification payload: {title, body, data: {chatId, chatTitle}}."""
    if ok:
        title = "Analysis Complete"
        body = f'Analysis for "{chat_title}" is ready'
    else:
        title = "Analysis Failed"
        body = f'Analysis for "{chat_title}" could not be completed'
    return {
        "title": title,
        "body": body,
        "data": {"chatId": int(chat_id), "chatTitle": str(chat_title)},
    }
