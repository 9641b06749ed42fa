"""
Fallback lines - deterministic local text for when no narrator answers.

The same (description, target) pair always picks the same phrase within
a tier, so a replayed situation reads the same way. Tiers follow heat
for the Mayor and power (morale) for the citizens.
"""

from __future__ import annotations
import hashlib

MAYOR_RESPONSES = {
    "low": [
        "Deploying additional surveillance units to target area.",
        "Efficiency algorithms updated to counter disruption patterns.",
        "Property optimization protocols activated.",
        "Citizen behavior patterns flagged for enhanced monitoring.",
        "Automated patrol routes recalibrated for maximum coverage.",
    ],
    "medium": [
        "Escalating surveillance protocols in response to inefficiency.",
        "Economic pressure algorithms activated for non-compliant zones.",
        "Predictive policing models deployed to prevent further disruption.",
        "Property value optimization accelerated in affected areas.",
        "Social media monitoring increased 200% in target demographics.",
    ],
    "high": [
        "CRITICAL THREAT: Deploying emergency optimization protocols.",
        "All available enforcement algorithms directed to resistance zones.",
        "Immediate eviction procedures initiated for efficiency restoration.",
        "Emergency gentrification acceleration approved for target areas.",
        "Maximum surveillance state protocols now active city-wide.",
    ],
}

CITIZEN_RESPONSES = {
    "low": [
        "Community center organizing emergency response meeting tonight.",
        "Neighbors sharing resources and child care for organizers.",
        "Local business offering safe space for resistance planning.",
        "Elders sharing organizing wisdom and historical strategies.",
        "Youth setting up secure communication networks for coordination.",
    ],
    "medium": [
        "Mutual aid network expanding to support more families.",
        "Local artists creating solidarity murals across the neighborhood.",
        "Community kitchen providing free meals for all organizers.",
        "Residents documenting police misconduct and sharing evidence.",
        "Small businesses coordinating boycott of corporate developments.",
    ],
    "high": [
        "Multiple neighborhoods coordinating simultaneous resistance actions.",
        "Community land trust forming to protect affordable housing.",
        "Neighborhood assemblies planning participatory democracy structures.",
        "Cross-community solidarity networks sharing successful strategies.",
        "Alternative economic systems emerging through mutual aid networks.",
    ],
}

ESCALATION_LINES = [
    "Emergency optimization protocols activated across all districts.",
    "Deploying autonomous enforcement units to resistance hotspots.",
    "Predictive arrest algorithms now targeting potential dissidents.",
    "Economic sanctions applied to non-compliant neighborhood businesses.",
    "Emergency gentrification orders fast-tracked through automated systems.",
]

ROUTINE_LINES = [
    "Efficiency optimization protocols updated across city systems.",
    "Property value algorithms recalibrated for maximum ROI.",
    "Citizen movement patterns analyzed for behavioral optimization.",
    "Resource allocation algorithms fine-tuned for peak efficiency.",
    "Automated zoning adjustments implemented per optimization models.",
]

COMMUNITY_LINES = {
    "high": [
        "Neighborhood assembly discussing participatory budgeting proposals.",
        "Community land trust organizing to prevent further gentrification.",
        "Multiple blocks coordinating resistance strategy sharing.",
        "Local businesses forming cooperative network for mutual support.",
        "Residents establishing community-controlled broadband infrastructure.",
    ],
    "medium": [
        "Community garden providing fresh food for organizing meetings.",
        "Local clinic offering free healthcare for resistance members.",
        "Neighbor-to-neighbor wellness checks ensuring everyone's safety.",
        "Community tool library opening for neighborhood infrastructure projects.",
        "Residents creating phone trees for rapid emergency response.",
    ],
    "low": [
        "Families sharing meals and child care during difficult times.",
        "Elderly residents offering homes as safe meeting spaces.",
        "Community members quietly documenting surveillance and harassment.",
        "Local volunteers providing transportation for those in need.",
        "Neighbors creating informal support networks for basic needs.",
    ],
}


def heat_tier(heat: float) -> str:
    if heat > 50:
        return "high"
    if heat > 20:
        return "medium"
    return "low"


def morale_tier(power: float) -> str:
    if power > 50:
        return "high"
    if power > 20:
        return "medium"
    return "low"


def stable_index(action_description: str, target_name: str, size: int) -> int:
    """Index derived from the inputs alone; identical across processes."""
    digest = hashlib.sha256(f"{action_description}|{target_name}".encode("utf-8")).hexdigest()
    return int(digest[:12], 16) % size


def mayor_fallback(action_description: str, target_name: str, heat: float) -> str:
    lines = MAYOR_RESPONSES[heat_tier(heat)]
    return lines[stable_index(action_description, target_name, len(lines))]


def citizen_fallback(action_description: str, target_name: str, power: float) -> str:
    lines = CITIZEN_RESPONSES[morale_tier(power)]
    return lines[stable_index(action_description, target_name, len(lines))]
