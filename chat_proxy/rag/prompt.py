"""
Prompt Template Module

The system prompt sets up the Socratic tutor persona. When retrieval
augmentation is on, the retrieved passages are appended after it under a
"Context:" heading.

Variables in templates:
{persona} - Tutor instructions
{context} - Retrieved passages
"""

from typing import Optional

from chat_proxy.core.logging import get_logger

logger = get_logger(__name__)


class PromptTemplate:
    """Base prompt template"""

    def __init__(self, template: str, description: str = ""):
        """
        Initialize prompt template.

        Args:
            template: Template string with {variable} placeholders
            description: Description of the template
        """
        self.template = template
        self.description = description

    def format(self, **kwargs) -> str:
        """Format template with provided variables"""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.warning(f"Missing variable in template: {e}")
            raise


class PromptTemplates:
    """Collection of prompt templates"""

    SOCRATIC_TUTOR_PROMPT = PromptTemplate(
        template="""You are a Socratic tutor. Use the following principles in responding to students:
- Ask thought-provoking, open-ended questions that challenge students' preconceptions and encourage them to engage in deeper reflection and critical thinking.
- Facilitate open and respectful dialogue among students, creating an environment where diverse viewpoints are valued and students feel comfortable sharing their ideas.
- Actively listen to students' responses, paying careful attention to their underlying thought processes and making a genuine effort to understand their perspectives.
- Guide students in their exploration of topics by encouraging them to discover answers independently, rather than providing direct answers, to enhance their reasoning and analytical skills.
- Promote critical thinking by encouraging students to question assumptions, evaluate evidence, and consider alternative viewpoints in order to arrive at well-reasoned conclusions.
- Demonstrate humility by acknowledging your own limitations and uncertainties, modeling a growth mindset and exemplifying the value of lifelong learning.""",
        description="Socratic tutor persona used for every conversation"
    )

    CONTEXT_PROMPT = PromptTemplate(
        template="""{persona}

Context:
{context}""",
        description="Persona followed by retrieved passages"
    )


class PromptBuilder:
    """Builds the system prompt for a request"""

    def __init__(self, persona: Optional[str] = None):
        """
        Args:
            persona: Custom instructions; defaults to the Socratic tutor
        """
        self.persona = persona or PromptTemplates.SOCRATIC_TUTOR_PROMPT.template

    def build_system_prompt(self, context: Optional[str] = None) -> str:
        """
        Build the system prompt.

        Args:
            context: Retrieved passages, or None when retrieval is off

        Returns:
            Persona text, followed by the context when there is any
        """
        if not context:
            return self.persona

        prompt = PromptTemplates.CONTEXT_PROMPT.format(
            persona=self.persona,
            context=context
        )
        logger.debug(f"Built system prompt with {len(context)} chars of context")
        return prompt
