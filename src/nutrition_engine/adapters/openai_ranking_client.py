"""OpenAI Responses API client for substitution ranking."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from nutrition_engine.services.ranking import RankingClient


@dataclass
class OpenAIRankingClient(RankingClient):
    """Ranking client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    store: bool = False

    @classmethod
    def create(cls, api_key: str) -> "OpenAIRankingClient":
        """Create an OpenAI ranking client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def rank(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        response = await self.client.responses.create(
            model=model,
            instructions=system_prompt,
            input=[
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "substitution_ranking",
                    "strict": True,
                    "schema": schema,
                }
            },
            store=self.store,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return json.loads(output_text)

    async def close(self) -> None:
        await self.client.close()
