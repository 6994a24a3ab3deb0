"""Hand-curated questions served when no scraped data is available."""

from __future__ import annotations

from models import CHEMISTRY_PAPER, PHYSICS_PAPER, QuestionRecord

BACKUP_SOURCE = "backup"

BACKUP_QUESTIONS: tuple[QuestionRecord, ...] = (
    QuestionRecord(
        year=2023,
        paper=PHYSICS_PAPER,
        question="A 2 kg object is subjected to a net force of 10 N. Calculate the acceleration of the object.",
        topic="mechanics",
        subtopic="newton's laws",
        answer="Using Newton's Second Law: F = ma\na = F/m = 10 N / 2 kg = 5 m/s²",
        source=BACKUP_SOURCE,
    ),
    QuestionRecord(
        year=2022,
        paper=PHYSICS_PAPER,
        question=(
            "A circuit has a resistance of 5 Ω and a potential difference of 20 V. "
            "Calculate the current flowing through the circuit."
        ),
        topic="electricity & magnetism",
        subtopic="electric circuits",
        answer="Using Ohm's Law: V = IR\nI = V/R = 20 V / 5 Ω = 4 A",
        source=BACKUP_SOURCE,
    ),
    QuestionRecord(
        year=2023,
        paper=CHEMISTRY_PAPER,
        question="Calculate the pH of a solution with a hydrogen ion concentration of 1 × 10⁻³ mol·dm⁻³.",
        topic="chemical change",
        subtopic="acids and bases",
        answer="pH = -log[H⁺]\npH = -log(1 × 10⁻³)\npH = 3",
        source=BACKUP_SOURCE,
    ),
    QuestionRecord(
        year=2021,
        paper=CHEMISTRY_PAPER,
        question="Draw the structural formula for propan-1-ol.",
        topic="organic chemistry",
        subtopic="alcohols",
        answer="CH₃CH₂CH₂OH",
        source=BACKUP_SOURCE,
    ),
    QuestionRecord(
        year=2022,
        paper=PHYSICS_PAPER,
        question=(
            "A car accelerates uniformly from rest to 20 m/s in 5 seconds. "
            "Calculate the distance traveled during this time."
        ),
        topic="mechanics",
        subtopic="kinematics",
        answer=(
            "Using x = ut + ½at²\n"
            "Where u = 0 m/s, t = 5 s, and a = v/t = 20/5 = 4 m/s²\n"
            "x = 0(5) + ½(4)(5)² = 50 m"
        ),
        source=BACKUP_SOURCE,
    ),
)
