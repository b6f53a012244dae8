import logging

SUCCESS = "success"
ERROR = "error"
INFO = "info"


class Notifier:
    """Приемник уведомлений для UI. Ничего не возвращает и не влияет на логику."""

    def notify(self, kind: str, message: str) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    def notify(self, kind: str, message: str) -> None:
        if kind == ERROR:
            logging.error(f"[notify] {message}")
        else:
            logging.info(f"[notify:{kind}] {message}")


class CollectingNotifier(Notifier):
    """Копит сообщения, чтобы отдать их в ответе API."""

    def __init__(self):
        self.messages = []

    def notify(self, kind: str, message: str) -> None:
        self.messages.append({"kind": kind, "message": message})
