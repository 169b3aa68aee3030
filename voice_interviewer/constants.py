"""Static interview content: templates, question banks and skill vocabulary."""

from typing import Dict, List

DEFAULT_DURATION_MINUTES = 20

INTERVIEW_TEMPLATES: List[Dict[str, str]] = [
    {
        "id": "frontend",
        "label": "Frontend Engineer",
        "description": "React-heavy product interviews with architecture and UI trade-offs.",
    },
    {
        "id": "backend",
        "label": "Backend Engineer",
        "description": "APIs, data modelling, reliability and service design.",
    },
    {
        "id": "fullstack",
        "label": "Full Stack Engineer",
        "description": "End-to-end feature delivery across UI, API and storage.",
    },
    {
        "id": "devops",
        "label": "DevOps Engineer",
        "description": "Delivery pipelines, infrastructure as code and automation.",
    },
    {
        "id": "qa",
        "label": "QA / Test Engineer",
        "description": "Test strategy, automation frameworks and release quality.",
    },
    {
        "id": "sre",
        "label": "Site Reliability Engineer",
        "description": "Incident response, observability and capacity planning.",
    },
    {
        "id": "dsa",
        "label": "DSA / Problem Solving",
        "description": "Algorithmic thinking, complexity analysis, and optimization.",
    },
    {
        "id": "behavioral",
        "label": "Behavioral",
        "description": "Communication, ownership, and collaboration stories.",
    },
]

BASE_QUESTION_BANK: Dict[str, List[Dict[str, str]]] = {
    "frontend": [
        {
            "prompt": "Tell me about a React feature you built end-to-end and what technical decisions mattered most.",
            "competency": "technical",
        },
        {
            "prompt": "How do you approach state management in a medium-to-large frontend application?",
            "competency": "technical",
        },
        {
            "prompt": "Describe a performance issue you found in the UI and how you diagnosed and fixed it.",
            "competency": "problem-solving",
        },
        {
            "prompt": "How do you ensure accessibility and responsive behavior while shipping quickly?",
            "competency": "quality",
        },
    ],
    "backend": [
        {
            "prompt": "Walk me through an API you designed and how you handled versioning and backward compatibility.",
            "competency": "technical",
        },
        {
            "prompt": "How do you choose between a relational database and a document store for a new service?",
            "competency": "technical",
        },
        {
            "prompt": "Describe a production incident caused by a slow query or a hot path and how you resolved it.",
            "competency": "problem-solving",
        },
        {
            "prompt": "How do you make a service safe to retry when downstream calls can fail halfway?",
            "competency": "reliability",
        },
    ],
    "fullstack": [
        {
            "prompt": "Describe a feature you shipped across the UI, the API and the database, and where the hardest part was.",
            "competency": "technical",
        },
        {
            "prompt": "How do you keep the contract between your frontend and backend from drifting over time?",
            "competency": "technical",
        },
        {
            "prompt": "Tell me about a bug that crossed the client and server boundary and how you tracked it down.",
            "competency": "problem-solving",
        },
        {
            "prompt": "How do you decide whether logic belongs in the browser or on the server?",
            "competency": "judgment",
        },
    ],
    "devops": [
        {
            "prompt": "Walk me through a CI/CD pipeline you built and the stages you considered essential.",
            "competency": "technical",
        },
        {
            "prompt": "How do you manage infrastructure changes safely across multiple environments?",
            "competency": "technical",
        },
        {
            "prompt": "Describe a deployment that went wrong and how you rolled back or recovered.",
            "competency": "problem-solving",
        },
        {
            "prompt": "How do you handle secrets and credentials in automated pipelines?",
            "competency": "security",
        },
    ],
    "qa": [
        {
            "prompt": "How do you decide what to automate and what to keep as manual exploratory testing?",
            "competency": "judgment",
        },
        {
            "prompt": "Describe a test automation framework you set up or improved and the design choices behind it.",
            "competency": "technical",
        },
        {
            "prompt": "Tell me about a critical bug you caught late in a release and how you handled it with the team.",
            "competency": "collaboration",
        },
        {
            "prompt": "How do you deal with flaky tests in a large regression suite?",
            "competency": "problem-solving",
        },
    ],
    "sre": [
        {
            "prompt": "Walk me through how you led or supported a major incident from detection to postmortem.",
            "competency": "ownership",
        },
        {
            "prompt": "How do you define service level objectives and error budgets for a new service?",
            "competency": "technical",
        },
        {
            "prompt": "Describe an alert that was noisy or misleading and how you improved it.",
            "competency": "problem-solving",
        },
        {
            "prompt": "How do you plan capacity for a system whose traffic is growing quickly?",
            "competency": "technical",
        },
    ],
    "dsa": [
        {
            "prompt": "Walk me through a problem where you started with a brute-force solution and optimized it.",
            "competency": "problem-solving",
        },
        {
            "prompt": "How do you decide between a hash map, heap, and sorting strategy in interview problems?",
            "competency": "technical",
        },
        {
            "prompt": "When discussing complexity, how do you communicate trade-offs clearly to an interviewer?",
            "competency": "communication",
        },
        {
            "prompt": "Tell me about a time your first algorithm idea failed and what you changed.",
            "competency": "adaptability",
        },
    ],
    "behavioral": [
        {
            "prompt": "Tell me about a high-stakes conflict in your team and how you resolved it.",
            "competency": "collaboration",
        },
        {
            "prompt": "Describe a situation where you took ownership without being asked by your manager.",
            "competency": "ownership",
        },
        {
            "prompt": "Share an example of receiving difficult feedback and what you changed afterward.",
            "competency": "self-awareness",
        },
        {
            "prompt": "How do you prioritize when deadlines, product pressure, and technical debt all collide?",
            "competency": "judgment",
        },
    ],
}

# Order matters: extracted skill lists follow this order.
SKILL_KEYWORDS: List[str] = [
    "react",
    "javascript",
    "typescript",
    "node",
    "express",
    "next.js",
    "redux",
    "css",
    "html",
    "tailwind",
    "graphql",
    "rest",
    "sql",
    "postgres",
    "mongodb",
    "docker",
    "kubernetes",
    "aws",
    "gcp",
    "testing",
    "jest",
    "cypress",
    "microservices",
    "python",
    "java",
    "golang",
    "django",
    "flask",
    "fastapi",
    "redis",
    "kafka",
    "terraform",
    "ansible",
    "linux",
    "ci/cd",
    "selenium",
    "playwright",
    "pytest",
    "prometheus",
    "grafana",
]

REQUIRED_MARKERS: List[str] = [
    "must",
    "required",
    "strong",
    "need",
    "minimum",
]

NICE_TO_HAVE_MARKERS: List[str] = [
    "preferred",
    "plus",
    "good to have",
    "nice to have",
]

PROJECT_MARKERS: List[str] = [
    "project",
    "built",
    "developed",
    "implemented",
    "launched",
]

MAX_PROJECT_MENTIONS = 5
MAX_RESPONSIBILITIES = 6
