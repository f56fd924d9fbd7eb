"""
Gen Ed requirement catalog.

The catalog is static configuration: it is built once when the process
starts and handed to every matcher by reference. Nothing in the engine
mutates it.
"""

from typing import Dict, Iterable, Iterator, List, Tuple

from genedai.schemas import RequirementDefinition
from genedai.utils import chunked


class RequirementCatalog:
    def __init__(self, requirements: Iterable[RequirementDefinition]):
        self._requirements: Tuple[RequirementDefinition, ...] = tuple(requirements)
        self._by_name: Dict[str, RequirementDefinition] = {}
        for req in self._requirements:
            key = req.name.casefold()
            if key in self._by_name:
                raise ValueError(f"Duplicate requirement name in catalog: {req.name!r}")
            self._by_name[key] = req

    def __iter__(self) -> Iterator[RequirementDefinition]:
        return iter(self._requirements)

    def __len__(self) -> int:
        return len(self._requirements)

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._by_name

    @property
    def requirements(self) -> Tuple[RequirementDefinition, ...]:
        return self._requirements

    def get(self, name: str) -> RequirementDefinition:
        try:
            return self._by_name[name.casefold()]
        except KeyError:
            raise KeyError(f"Unknown requirement: {name!r}") from None

    def names(self) -> List[str]:
        return [r.name for r in self._requirements]

    def batches(self, size: int) -> List[List[RequirementDefinition]]:
        return chunked(self._requirements, size)


GEN_ED_REQUIREMENTS = [
    RequirementDefinition(
        name="Quantitative Reasoning",
        description="Students must use mathematical, statistical, and/or computational methods to analyze and solve problems involving quantitative information.",
        slos=[
            "Interpret quantitative information.",
            "Use quantitative methods to solve problems.",
            "Develop conclusions based on quantitative analysis.",
        ],
        keywords=["mathematical", "statistical", "computational", "quantitative", "analysis", "problem-solving", "data"],
        required_elements=[
            "Mathematical or statistical methods",
            "Quantitative problem-solving",
            "Data analysis components",
            "Drawing conclusions from analysis",
        ],
    ),
    RequirementDefinition(
        name="Modern Language",
        description="Students learn to interpret information in authentic messages and informational texts using listening, reading, and viewing strategies.",
        slos=[
            "Interpret information in authentic messages and informational texts using listening, reading, and viewing strategies.",
            "Interact with others using culturally appropriate language and gestures.",
            "Present meaningful information, concepts and viewpoints.",
            "Compare social practices from their own culture relative to those from another culture.",
        ],
        keywords=["language", "authentic messages", "culturally appropriate", "social practices", "foreign language", "communication"],
        required_elements=[
            "Language instruction",
            "Cultural components",
            "Communication practice",
            "Authentic language materials",
        ],
    ),
    RequirementDefinition(
        name="Natural Sciences",
        description="Students learn scientific principles and methods to understand the natural world.",
        slos=[
            "Differentiate among facts, laws, theories, and hypotheses in the sciences.",
            "Apply scientific methods to investigate the natural world.",
            "Analyze qualitative and/or quantitative data using scientific reasoning.",
            "Evaluate claims using reliable scientific evidence.",
        ],
        keywords=["scientific methods", "natural world", "investigation", "lab work", "hypothesis", "evidence", "data"],
        required_elements=[
            "Scientific method application",
            "Data collection and analysis",
            "Hypothesis testing",
            "Laboratory or field components",
            "Evidence-based reasoning",
        ],
    ),
    RequirementDefinition(
        name="Exploring Artistic Works",
        description="Students evaluate and engage with artistic works in their cultural, social, and aesthetic contexts.",
        slos=[
            "Identify elements of artistic works that convey ideas, beliefs, and values of various cultures in different historical periods.",
            "Analyze artistic works using methodologies of interpretation.",
            "Create informed interpretations of artistic works using appropriate critical vocabulary.",
            "Communicate personal reactions to artistic works within informed interpretations.",
        ],
        keywords=["artistic", "aesthetic", "cultural context", "interpretation", "creative expression", "analysis", "evaluation"],
        required_elements=[
            "Analysis of artistic works",
            "Cultural context examination",
            "Critical interpretation methods",
            "Artistic expression evaluation",
            "Critical vocabulary development",
        ],
    ),
    RequirementDefinition(
        name="Studies in Theology and Religion",
        description="Students engage in critical reflection on religious texts, doctrines, and practices.",
        slos=[
            "Describe and analyze the content of religious texts and how they function in religious communities.",
            "Describe, analyze, and compare theological perspectives including Catholic perspectives.",
            "Analyze how religious communities interpret, interact with, and transform the world around them.",
            "Integrate theological, religious, and interdisciplinary perspectives to analyze experiences and issues.",
        ],
        keywords=["theology", "religion", "Catholic", "religious texts", "doctrines", "practices", "interdisciplinary"],
        required_elements=[
            "Religious text analysis",
            "Theological perspectives comparison",
            "Catholic tradition examination",
            "Religious community studies",
            "Interdisciplinary approaches",
        ],
    ),
    RequirementDefinition(
        name="Creativity and Making",
        description="Students develop creative thinking and making skills through iterative processes.",
        slos=[
            "Generate multiple approaches to problems through creative thinking.",
            "Design a process for iterative creative problem-solving.",
            "Produce a creative work through an iterative, reflective process.",
            "Evaluate the way their creative work both influences and is influenced by others.",
        ],
        keywords=["creative", "making", "iterative", "design", "reflection", "problem-solving", "innovation"],
        required_elements=[
            "Creative process development",
            "Iterative making practices",
            "Reflective evaluation",
            "Collaborative creation",
            "Innovative problem-solving",
        ],
    ),
    RequirementDefinition(
        name="Diverse American Perspectives",
        description="Students examine diverse cultures and perspectives in the American experience.",
        slos=[
            "Articulate the distinctive experiences and perspectives of at least one group marginalized due to racial, gender, sexual, or religious identity.",
            "Identify intersectionality, historical context, and systems of power in American society.",
            "Analyze how systemic inequality affects personal experiences and social arrangements.",
            "Evaluate how diversity and inclusion enhance society and American democracy.",
        ],
        keywords=["diversity", "American", "perspectives", "marginalized", "intersectionality", "race", "gender", "inequality"],
        required_elements=[
            "Marginalized group experiences",
            "Systems of power analysis",
            "Intersectionality examination",
            "Diversity and inclusion concepts",
            "Historical context of inequality",
        ],
    ),
    RequirementDefinition(
        name="Global Perspectives",
        description="Students analyze global issues and cultural diversity beyond the American experience.",
        slos=[
            "Analyze transnational cultural, economic, or political interactions.",
            "Describe and analyze cultural diversity across societies outside the United States.",
            "Analyze the cultural, historical, and/or political dimensions of regional or global issues.",
            "Evaluate how global issues and cultural diversity affect individuals and communities.",
        ],
        keywords=["global", "transnational", "international", "cultural diversity", "world perspectives", "cross-cultural", "global issues"],
        required_elements=[
            "Non-U.S. cultural analysis",
            "International or global issues",
            "Cross-cultural comparison",
            "Transnational interactions",
            "Global diversity examination",
        ],
    ),
    RequirementDefinition(
        name="Ethics",
        description="Students examine ethical theories and apply ethical reasoning to complex issues.",
        slos=[
            "Identify and explain philosophical theories of ethics.",
            "Analyze ethical dimensions of contemporary issues.",
            "Apply moral reasoning to complex situations.",
            "Articulate and defend ethical positions using philosophical reasoning.",
        ],
        keywords=["ethics", "moral", "philosophical", "values", "reasoning", "ethical theory", "moral judgment"],
        required_elements=[
            "Ethical theory examination",
            "Moral reasoning application",
            "Contemporary ethical issues",
            "Philosophical analysis",
            "Values evaluation",
        ],
    ),
    RequirementDefinition(
        name="Writing Rich Mission Markers",
        description="Students develop advanced writing skills through substantial discipline-specific writing.",
        slos=[
            "Write discipline-specific texts for multiple purposes and audiences.",
            "Incorporate appropriate conventions, genre expectations, and discipline-specific vocabulary.",
            "Integrate relevant evidence and sources with proper citation.",
            "Implement a recursive writing process involving drafting, feedback, and revision.",
        ],
        keywords=["writing", "discipline-specific", "recursive", "revision", "genres", "conventions", "citation"],
        required_elements=[
            "Multiple substantial writing assignments",
            "Discipline-specific writing conventions",
            "Recursive writing process",
            "Feedback and revision cycles",
            "Source integration and citation",
        ],
    ),
    RequirementDefinition(
        name="Social Identities Mission Marker",
        description="Students analyze how intersections of social identities influence individual experiences and perspectives.",
        slos=[
            "Express ways in which the intersection of social identities influence individual life experiences and perspectives.",
            "Integrate and apply course content about underrepresented cultures in interdisciplinary contexts.",
            "Articulate awareness of central historical and present diversity issues.",
            "Demonstrate knowledge of the history, customs, worldviews, and cultural markers of minority groups.",
        ],
        keywords=["social identities", "intersection", "SOGI", "race", "ethnicity", "class", "religion", "underrepresented"],
        required_elements=[
            "Intersectionality analysis",
            "Underrepresented cultures study",
            "Historical context of diversity issues",
            "Minority group cultural examination",
            "Social identity reflection",
        ],
    ),
    RequirementDefinition(
        name="Experiential Learning for Social Justice",
        description="Students engage in community-based experiences focused on social justice issues.",
        slos=[
            "Apply academic knowledge and skills through community-based social justice work.",
            "Analyze societal challenges and social justice issues through experiential learning.",
            "Reflect on how community-based work shapes understanding of course material and personal values.",
            "Evaluate the relationship between experiential learning and liberal arts education.",
        ],
        keywords=["experiential", "social justice", "community-based", "service learning", "reflection", "societal challenges", "community engagement"],
        required_elements=[
            "Community-based service component",
            "Social justice focus",
            "Reflective practice",
            "Academic integration with service",
            "Structured community engagement",
        ],
    ),
]


def load_catalog() -> RequirementCatalog:
    return RequirementCatalog(GEN_ED_REQUIREMENTS)
