import asyncio
import random
import logging
from typing import Optional, Sequence

import requests

import config
from errors import ProviderUnavailable
from models import Question

logger = logging.getLogger(__name__)


def build_options(answer: str, pool: Sequence[str] = config.AUTHOR_POOL,
                  num_options: int = config.NUM_OPTIONS,
                  rng: Optional[random.Random] = None) -> list[str]:
    """Pick distinct distractors from the pool and put the answer in a random slot."""
    rng = rng or random
    distractors = list(dict.fromkeys(a for a in pool if a != answer))
    if len(distractors) < num_options:
        raise ValueError(f"Author pool needs at least {num_options} names besides '{answer}'")
    options = rng.sample(distractors, num_options)
    options[rng.randrange(num_options)] = answer
    return options


class QuoteProvider:
    """Fetches a quote from the quote API and turns it into a Question."""

    def __init__(self, api_url: str = config.QUOTE_API_URL,
                 timeout: float = config.QUOTE_FETCH_TIMEOUT):
        self.api_url = api_url
        self.timeout = timeout

    def _fetch_sync(self) -> Question:
        try:
            response = requests.get(self.api_url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()[0]
            prompt = str(data["quote"]).strip()
            answer = str(data["author"]).strip()
        except requests.Timeout as e:
            logger.warning("Quote API timed out after %ss", self.timeout)
            raise ProviderUnavailable() from e
        except requests.RequestException as e:
            logger.error("HTTP error calling quote API: %s", e)
            raise ProviderUnavailable() from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected quote API response structure: %s", e)
            raise ProviderUnavailable() from e

        if not prompt or not answer:
            logger.error("Quote API returned an empty quote or author")
            raise ProviderUnavailable()

        question = Question(prompt=prompt, correct_answer=answer, options=build_options(answer))
        logger.info("Quote fetched: '%s' (answer: %s)", prompt[:100], answer)
        return question

    async def fetch_question(self) -> Question:
        # requests is blocking; keep the event loop free while it runs
        return await asyncio.to_thread(self._fetch_sync)


quote_provider = QuoteProvider()
