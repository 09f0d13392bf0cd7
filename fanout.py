import asyncio
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from errors import FanoutError
from languages import SUPPORTED_LANGUAGES
from logging_config import get_logger

logger = get_logger(__name__)


async def fan_out(
    keys: Iterable[str],
    call: Callable[[str], Awaitable],
    fail_fast: bool = True,
    max_concurrency: Optional[int] = None,
) -> Tuple[Dict[str, object], Dict[str, BaseException]]:
    """Run call(key) once per unique key concurrently and join the results.

    With fail_fast the first failure cancels the calls still in flight and
    raises FanoutError. Otherwise every call is awaited and failures are
    returned next to the successful results.
    """
    unique = list(dict.fromkeys(keys))
    if not unique:
        return {}, {}

    limit = min(max_concurrency or len(unique), len(unique), len(SUPPORTED_LANGUAGES))
    semaphore = asyncio.Semaphore(limit)

    async def run(key):
        async with semaphore:
            return await call(key)

    tasks = {asyncio.create_task(run(key)): key for key in unique}
    results: Dict[str, object] = {}
    errors: Dict[str, BaseException] = {}

    pending = set(tasks)
    while pending:
        done, pending = await asyncio.wait(
            pending, return_when=asyncio.FIRST_EXCEPTION if fail_fast else asyncio.ALL_COMPLETED
        )
        for task in done:
            key = tasks[task]
            if task.exception() is not None:
                errors[key] = task.exception()
            else:
                results[key] = task.result()

        if errors and fail_fast:
            for task in pending:
                task.cancel()
            logger.warning(f"Fan-out aborted, {len(pending)} calls cancelled: {list(errors)}")
            raise FanoutError(errors)

    return results, errors


async def translate_all(
    services,
    text: str,
    source_language: str,
    target_languages: Iterable[str],
    fail_fast: bool = True,
) -> Tuple[Dict[str, str], Dict[str, BaseException]]:
    """One translation per unique target language; the source language keeps the original text."""
    targets = [lang for lang in dict.fromkeys(target_languages) if lang != source_language]
    logger.debug(f"Translating from {source_language} to {targets}")

    async def translate(target):
        return await services.translate(text, source_language, target)

    translated, errors = await fan_out(targets, translate, fail_fast=fail_fast)
    translations = {source_language: text}
    translations.update(translated)
    return translations, errors


async def synthesize_all(
    services,
    translations: Dict[str, str],
    fail_fast: bool = True,
) -> Tuple[Dict[str, str], Dict[str, BaseException]]:
    """One synthesized clip per language in the translation map."""

    async def synthesize(language):
        return await services.synthesize(translations[language], language)

    return await fan_out(translations.keys(), synthesize, fail_fast=fail_fast)
