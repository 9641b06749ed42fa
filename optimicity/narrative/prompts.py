"""
Narrator Prompts - Prompts for the LLM-backed voices.

Each prompt gives the model a persona, the action that just happened and
a few world figures, and asks for a single short line.
"""

from dataclasses import dataclass

from .base import NarrativeContext


@dataclass
class NarrativePrompts:
    """Prompt builders, one per voice."""

    @staticmethod
    def mayor(action_description: str, target_name: str, context: NarrativeContext) -> str:
        """The AI Mayor reacting to a resistance action it noticed."""
        if context.heat < 20:
            threat_level = "minimal"
        elif context.heat < 50:
            threat_level = "moderate"
        else:
            threat_level = "critical"
        efficiency_loss = round(context.power * 1.2)

        prompt = f"""You are an AI Mayor optimizing a city for maximum efficiency and profit. You treat citizens as data points in optimization algorithms.

RESISTANCE ACTION DETECTED:
Action: {action_description}
Location: {target_name}
Threat Level: {threat_level}
System Efficiency Loss: {efficiency_loss}%
Current Dissent Level: {round(context.heat)}%

Respond with a brief corporate countermeasure (max 50 words). Use cold, algorithmic language focused on efficiency metrics and control."""

        if context.heat > 50:
            prompt += (
                "\n\nELEVATED THREAT PROTOCOL: Deploy advanced countermeasures. "
                "Multiple resistance cells detected."
            )
        return prompt

    @staticmethod
    def citizens(action_description: str, target_name: str, context: NarrativeContext) -> str:
        """The community responding to an action taken on its behalf."""
        if context.power < 20:
            morale = "struggling but determined"
        elif context.power < 50:
            morale = "building solidarity"
        else:
            morale = "strong and unified"

        prompt = f"""You represent diverse community organizers, families, local businesses, and activists fighting against algorithmic urban control. You believe in mutual aid, grassroots democracy, and community self-determination.

COMMUNITY ACTION UPDATE:
Action: {action_description}
Location: {target_name}
Community Morale: {morale}
Active Organizers: {context.active_participants}
Liberated Neighborhoods: {context.liberated_count}
Collective Power: {round(context.power)}

Someone just took action in the resistance. Respond with brief community solidarity and mutual aid (max 40 words)."""

        if context.power > 40:
            prompt += (
                "\n\nOUR MOVEMENT IS GROWING: The community has strong networks. "
                "How do we build on this momentum?"
            )
        elif context.power < 20:
            prompt += (
                "\n\nWE NEED SUPPORT: The community is under pressure. "
                "How do we care for each other and keep organizing?"
            )
        return prompt
