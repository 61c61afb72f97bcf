"""
Static APTIS rubric text, one entry per known task type.

``levels`` lists the rubric's band labels in band order, so ``levels[i]`` is
internal band ``i``; it must agree with ``TaskProfile.bands``.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .task_types import Skill, TaskType


@dataclass(frozen=True)
class Rubric:
	title: str
	skill: Skill
	levels: Tuple[str, ...]
	scale: str
	areas: Tuple[str, ...] = ()
	requirements: Tuple[str, ...] = ()
	notes: Tuple[str, ...] = ()
	checks: Tuple[str, ...] = ()
	comment_hint: str = "Assessment covering task completion and language control"
	suggestions_hint: str = "Specific improvement tips"
	# "words" or "responses": counted from the answer and shown to the model
	answer_metric: Optional[str] = None

	@property
	def band_scale(self) -> int:
		return len(self.levels) - 1


SPEAKING_AREAS = (
	"Task fulfilment / topic relevance",
	"Grammatical range and accuracy",
	"Vocabulary range and accuracy",
	"Pronunciation",
	"Fluency",
)

SPEAKING_AREAS_WITH_COHESION = SPEAKING_AREAS + ("Cohesion",)


_A2_FEATURES = """  • Uses some simple grammatical structures correctly, systematically makes basic mistakes
  • Vocabulary limited to concrete topics and descriptions, inappropriate lexical choices noticeable
  • Mispronunciations noticeable and strain listener
  • Noticeable pausing, false starts, reformulations
  • Cohesion limited, responses tend to be list of points"""

_B1_FEATURES = """  • Control of simple grammatical structures, errors when attempting complex structures
  • Sufficient vocabulary range and control, errors when expressing complex thoughts
  • Pronunciation intelligible, inappropriate mispronunciations occasionally strain listener
  • Some pausing, false starts, reformulations
  • Uses simple cohesive devices, links between ideas not always clear"""

_PART2_3_SCALE = f"""5 = B2 or above: Likely to be above B1 level

4 = B1.2: All three questions answered on-topic with:
{_B1_FEATURES}

3 = B1.1: Two questions answered on-topic with same features as B1.2

2 = A2.2: At least two questions on-topic with:
{_A2_FEATURES}

1 = A2.1: One question on-topic with same features as A2.2

0 = Below A2: Performance below A2, no meaningful language, or completely off-topic"""

_PART4_SCALE = """6 = C2: Likely to be above C1 level

5 = C1: Addresses all three questions, well-structured speech

4 = B2.2: All three questions addressed, well-structured with:
  • Range of complex grammar constructions used accurately, minor errors don't impede understanding
  • Range of vocabulary to discuss topics, some awkward usage or slightly inappropriate lexical choices
  • Pronunciation clearly intelligible
  • Backtracking and reformulations don't interrupt flow
  • Range of cohesive devices clearly indicate links between ideas

3 = B2.1: Two questions answered on-topic with:
  • Some complex grammar constructions used accurately, errors don't lead to misunderstanding
  • Sufficient vocabulary range, inappropriate choices don't lead to misunderstanding
  • Pronunciation intelligible, mispronunciations don't strain listener
  • Some pausing while searching for vocabulary but doesn't strain listener
  • Limited cohesive devices used to indicate links

2 = B1.2: At least two questions on-topic with:
  • Control of simple grammatical structures, errors when attempting complex structures
  • Vocabulary limitations make it difficult to deal fully with task
  • Pronunciation intelligible, occasional mispronunciations occasionally strain listener
  • Noticeable pausing, false starts, reformulations, repetition
  • Uses only simple cohesive devices, links not always clearly indicated

1 = B1.1: One question on-topic with same features as B1.2

0 = A1/A2: Performance below B1, no meaningful language, or completely off-topic"""


SPEAKING_PART1 = Rubric(
	title="Part 1 - Personal Information",
	skill=Skill.SPEAKING,
	levels=("A0", "A1.1", "A1.2", "A2.1", "A2.2", "B1+"),
	scale="""5 = B1 or above: Likely to be above A2 level

4 = A2.2: All three questions answered on-topic with:
  • Some simple grammatical structures used correctly, basic mistakes systematically occur
  • Vocabulary sufficient to respond, inappropriate lexical choices noticeable
  • Mispronunciations noticeable and frequently strain listener
  • Frequent pausing, false starts, reformulations but meaning clear

3 = A2.1: Two questions answered on-topic with same features as A2.2

2 = A1.2: At least two questions on-topic with:
  • Grammatical structure limited to words and phrases
  • Errors in basic patterns impede understanding
  • Vocabulary limited to very basic personal information words
  • Pronunciation mostly unintelligible except isolated words
  • Frequent pausing, false starts impede understanding

1 = A1.1: One question on-topic with same features as A1.2

0 = A0: No meaningful language or completely off-topic (memorised script, guessing)""",
	areas=SPEAKING_AREAS,
	checks=(
		"Consider: How many questions answered on-topic? Quality of grammar, vocabulary, pronunciation, fluency",
		"Be strict: A2.2 requires ALL THREE questions answered well",
	),
	comment_hint="Assessment covering task completion, grammar, vocabulary, pronunciation, fluency",
	suggestions_hint="Specific improvement tips for pronunciation, grammar, vocabulary, fluency",
)

SPEAKING_PART2 = Rubric(
	title="Part 2 - Describe, Express Opinion and Provide Reasons",
	skill=Skill.SPEAKING,
	levels=("Below A2", "A2.1", "A2.2", "B1.1", "B1.2", "B2+"),
	scale=_PART2_3_SCALE,
	areas=SPEAKING_AREAS_WITH_COHESION,
	notes=(
		"Part 2 requires describing a photograph and answering TWO related questions",
		"Questions increase in complexity: description → opinion",
		"Expected to talk 45 seconds per question",
		"Student must describe the photo AND answer both follow-up questions",
	),
	checks=(
		"Check: Did student describe the photo? Answer both follow-up questions?",
		"B1.2 requires ALL THREE tasks completed (describe + 2 questions)",
		"Assess cohesion: Are ideas connected or just listed?",
	),
	comment_hint="Assessment: Did they describe photo? Answer all questions? Grammar, vocabulary, pronunciation, fluency, cohesion quality",
	suggestions_hint="Specific tips: photo description skills, opinion expression, cohesive devices, pronunciation, grammar",
)

SPEAKING_PART3 = Rubric(
	title="Part 3 - Compare and Provide Reasons",
	skill=Skill.SPEAKING,
	levels=("Below A2", "A2.1", "A2.2", "B1.1", "B1.2", "B2+"),
	scale=_PART2_3_SCALE,
	areas=SPEAKING_AREAS_WITH_COHESION,
	notes=(
		"Part 3 requires comparing TWO pictures and answering TWO related questions",
		"Questions increase in complexity: description → comparison → speculation",
		"Expected to talk 45 seconds per question",
		"High scores require correct grammatical structures for speculation (e.g., might, could, would)",
		"Must identify similarities AND differences between images",
	),
	checks=(
		"Check: Did student compare both images? Answer both follow-up questions? Use speculation grammar?",
		"B1.2 requires ALL THREE tasks completed (compare + 2 questions)",
		"Assess speculation grammar: \"might\", \"could\", \"would\", conditional structures",
	),
	comment_hint="Assessment: Did they compare images? Answer all questions? Use speculation grammar? Quality of grammar, vocabulary, pronunciation, fluency, cohesion",
	suggestions_hint="Specific tips: comparison skills, speculation grammar (might/could/would), cohesive devices, pronunciation",
)

SPEAKING_PART4 = Rubric(
	title="Part 4 - Discuss Personal Experience and Opinion on Abstract Topic",
	skill=Skill.SPEAKING,
	levels=("A1/A2", "B1.1", "B1.2", "B2.1", "B2.2", "C1", "C2"),
	scale=_PART4_SCALE,
	areas=SPEAKING_AREAS_WITH_COHESION,
	notes=(
		"Part 4 gives 1 minute preparation, expects 2 minutes continuous speech",
		"Must answer ALL THREE abstract questions in one structured response",
	),
	checks=(
		"Did student answer ALL THREE questions? Or describe photo (wrong)?",
		"Is speech well-structured with clear flow? Or just listing points?",
		"Assess complexity: Simple grammar only → B1, Complex grammar → B2+",
		"Assess cohesion: Simple connectors (and, but) → B1, Range of devices (however, moreover, consequently) → B2+",
	),
	comment_hint="Assessment: Did they answer all 3 questions? Avoid photo description? Well-structured? Grammar complexity, vocabulary range, pronunciation, fluency, cohesion quality",
	suggestions_hint="Specific tips: structure (intro-body-conclusion), abstract thinking, complex grammar, cohesive devices, stay on topic",
)


WRITING_TASK1 = Rubric(
	title="Writing Task 1 - Word-level writing",
	skill=Skill.WRITING,
	levels=("A0", "A1.1", "A1.2", "above A1"),
	scale="""3 = above A1: All answers intelligible and appropriate
2 = A1.2: Most answers intelligible, minor spelling errors
1 = A1.1: Some answers intelligible, frequent errors impede understanding
0 = A0: No meaningful language or completely off-topic""",
	requirements=(
		"Format: Fill in basic information using 1-5 words per question",
		"Level: A1 level vocabulary and structures",
		"Assessment focus: Task fulfilment and communicative competence",
	),
	checks=("Consider: intelligibility, task completion, appropriacy of responses",),
	comment_hint="Brief assessment of task completion and intelligibility",
	suggestions_hint="For each answer: the student's words, the corrected version and why the correction is needed",
	answer_metric="words",
)

WRITING_TASK2 = Rubric(
	title="Writing Task 2 - Short text writing",
	skill=Skill.WRITING,
	levels=("A0", "A1.1", "A1.2", "A2.1", "A2.2", "B1+"),
	scale="""5 = B1+: Above A2 level performance
4 = A2.2: On topic, mostly accurate, sufficient vocabulary
3 = A2.1: On topic, simple structures, some errors
2 = A1.2: Not fully on topic, limited grammar/vocabulary
1 = A1.1: Limited words/phrases, serious errors
0 = A0: No meaningful language or completely off-topic""",
	requirements=(
		"Word count: 20-30 words",
		"Level: A2 level response",
		"Assessment areas: Task fulfilment/topic relevance, grammatical range and accuracy, punctuation, vocabulary range and accuracy, cohesion",
	),
	comment_hint="Assessment covering all areas: topic relevance, grammar, punctuation, vocabulary, cohesion",
	suggestions_hint="Change \"student's text\" to \"corrected text\" with the grammar or vocabulary rule behind each correction",
	answer_metric="words",
)

WRITING_TASK3 = Rubric(
	title="Writing Task 3 - Three written responses",
	skill=Skill.WRITING,
	levels=("A0", "A2.1", "A2.2", "B1.1", "B1.2", "B2+"),
	scale="""5 = B2+: Above B1 level
4 = B1.2: ALL three questions on topic with B1 features: control of simple grammatical structures, errors when attempting complex structures, punctuation/spelling mostly accurate, sufficient vocabulary, simple cohesive devices for linear sequence
3 = B1.1: TWO questions on topic with same B1.2 language features
2 = A2.2: At least two questions on topic with A2 features: simple structures at sentence level, errors sometimes impede understanding, noticeable punctuation/spelling mistakes, responses are lists not cohesive texts
1 = A2.1: ONE question on topic with same A2.2 language features
0 = A0: Below A2, no meaningful language, or completely off-topic""",
	requirements=(
		"Format: 3 responses to chat questions, 30-40 words each",
		"Level: B1 level responses expected",
		"Assessment areas: Task fulfilment/topic relevance, punctuation, grammatical range and accuracy, vocabulary range and accuracy, cohesion",
	),
	comment_hint="Assessment of all responses covering task completion and language control",
	suggestions_hint="For each response (Response 1, 2 or 3): the student's phrase, the corrected version and why it reads better",
	answer_metric="responses",
)

WRITING_TASK4 = Rubric(
	title="Writing Task 4 - Formal and informal writing",
	skill=Skill.WRITING,
	levels=("A1/A2", "B1.1", "B1.2", "B2.1", "B2.2", "C1", "C2"),
	scale="""6 = C2: Above C1 level
5 = C1: Features as B2.2 but higher proficiency
4 = B2.2: On topic, TWO different registers, good grammar
3 = B2.1: Partially on topic, register in ONE response
2 = B1.2: Partially on topic, register not consistent
1 = B1.1: Not on topic, no register awareness
0 = A1/A2: Below B1, no meaningful language""",
	requirements=(
		"Format: Informal email (40-50 words) + Formal email (120-150 words)",
		"Level: B2 level with register control",
		"Key assessment: Register appropriacy between friend vs unknown person",
		"Areas: Task achievement/register control, grammatical range/accuracy, vocabulary range/accuracy, punctuation, fluency and cohesion",
	),
	comment_hint="Assessment focusing on register control and language range/accuracy",
	suggestions_hint="For each email: the student's sentence, a corrected version in the right register and why the change is needed",
)


RUBRICS: Mapping[TaskType, Rubric] = MappingProxyType({
	TaskType.SPEAKING_INTRO: SPEAKING_PART1,
	TaskType.SPEAKING_DESCRIPTION: SPEAKING_PART2,
	TaskType.SPEAKING_COMPARISON: SPEAKING_PART3,
	TaskType.SPEAKING_DISCUSSION: SPEAKING_PART4,
	TaskType.WRITING_SHORT: WRITING_TASK1,
	TaskType.WRITING_FORM: WRITING_TASK2,
	TaskType.WRITING_LONG: WRITING_TASK3,
	TaskType.WRITING_EMAIL: WRITING_TASK4,
})


# Generic template: percentage band -> CEFR guidance
GENERIC_CEFR_GUIDANCE: Tuple[Tuple[float, float, str], ...] = (
	(0.0, 0.3, "A1 (Beginner)"),
	(0.3, 0.5, "A2 (Elementary)"),
	(0.5, 0.6, "B1 (Intermediate)"),
	(0.6, 0.7, "B1-B2"),
	(0.7, 0.8, "B2 (Upper-Intermediate)"),
	(0.8, 0.9, "B2-C1"),
	(0.9, 1.0, "C1-C2 (Advanced/Proficient)"),
)

LANGUAGE_VALIDATION = """LANGUAGE VALIDATION (HIGHEST PRIORITY):
- This is an ENGLISH language test. The response MUST be in English.
- If the response is in any non-English language, assign the MINIMUM score and explain the language error.
- Song lyrics, random words or content unrelated to the question: maximum 1 point.
- English but completely off-topic: maximum 2 points.
- No answer or silence: 0 points."""

WRITING_CORRECTIONS = """SPECIAL INSTRUCTIONS FOR WRITING ASSESSMENT:
- In "suggestions", provide SPECIFIC text corrections using exact quotes
- Format: 'Change "student's text" to "corrected text"'
- Focus on grammar, vocabulary, spelling, and structure errors
- Give concrete fixes, not general advice
- Example: 'Change "I go to school yesterday" to "I went to school yesterday"'"""

AUDIO_GUIDANCE = """GUIDANCE FOR AUDIO-ENHANCED SCORING:
- If pronunciation score is high (>80), consider higher fluency/accuracy CEFR levels
- If fluency score is low (<60), be cautious about assigning high CEFR levels
- Emotional tone 'confident'/'engaged' may indicate better performance than 'hesitant'
- Multiple pronunciation errors suggest lower accuracy levels
- Strong accent may affect intelligibility ratings"""

JSON_ONLY = "Return ONLY the JSON object, no markdown, no code blocks, no extra text. Use \\n for line breaks inside strings."
