class BmlQueryError(Exception):
    """Базовая ошибка приложения."""


class QueryValidationError(BmlQueryError, ValueError):
    """Ввод пользователя не прошёл проверку; к коллабораторам не обращались."""


class CollaboratorError(BmlQueryError):
    """Каталог, генератор, парсер или хранилище ответили ошибкой / недоступны."""


class NotFoundError(CollaboratorError):
    """Сохранённый запрос (или иная запись) не найден."""


class GenerationError(CollaboratorError):
    """Генератор отказался строить текст запроса по черновику."""


class ParseError(CollaboratorError):
    """Текст запроса не удалось разобрать обратно в черновик."""
