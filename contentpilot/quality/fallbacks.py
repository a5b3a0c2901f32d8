"""Locally rendered content templates, one per content type.

The quality gate renders these when every generation attempt was rejected,
and the offline stub provider renders them with whatever project facts it
can find. No provider call is involved either way.
"""

from __future__ import annotations

from string import Template
from typing import Any, Iterable, Optional

DEFAULT_NAME = "This Project"
DEFAULT_DESCRIPTION = "A practical tool that helps developers get useful work done with less effort."
DEFAULT_FEATURES = (
    "Straightforward setup that works with the tools you already use",
    "Clear documentation with practical examples",
    "Dependable behavior backed by automated tests",
)
DEFAULT_AUDIENCE = "developers and teams"
DEFAULT_TECH_STACK = "a modern, well-tested open source stack"

HOMEPAGE = Template("""\
# $name

$description

$name gives $audience a reliable way to handle everyday work without extra busywork. It fits into existing workflows, stays out of the way when things go well, and explains itself clearly when they do not.

## Features

$feature_bullets

## Why $name

Most projects grow faster than their documentation. $name keeps the story in step with the code, so new users understand what it does, who it is for, and how to begin. Maintainers spend less time answering repeated questions and more time improving the project itself.

Every part of $name is designed to be predictable. Configuration has sensible defaults, errors point at the cause, and upgrades are documented in the changelog.

## How It Works

Point $name at your project and it picks up the information it needs from files you already maintain. Results appear in a format that is easy to review, so you stay in control of what gets published. When something needs attention, clear messages explain what happened and suggest a next step.

## Getting Started

1. Install $name by following the instructions in the project README.
2. Work through the quick start guide to run a first example.
3. Explore the documentation to learn about advanced options.

## Get Started Today

Ready to try $name? Install it now, read the guide, and share feedback with the maintainers. Contributions, bug reports and ideas are always welcome.
""")

ABOUT = Template("""\
# About $name

$description

## Our Story

$name started with a practical problem that kept coming back: useful work was buried under repetitive manual steps. The maintainers built a small tool to remove that friction, shared it with colleagues, and kept improving it as more people found it helpful.

Our mission is simple: make good practices the easy default. Today the project is maintained in the open. Decisions are discussed publicly, releases follow a documented process, and every change is reviewed before it ships.

## Technology

$name is built on $tech_stack. The codebase favors readable modules, automated tests and clear interfaces, so new contributors can find their way around quickly.

## Who It Is For

$name is made for $audience who want dependable results without a steep learning curve.

## Get Involved

Read the contributing guide, open an issue, or suggest an improvement. Every contribution helps the project grow.
""")

FAQ = Template("""\
# $name FAQ

Answers to the questions people ask most often about $name.

## Common Questions

These are the questions and answers new users look for first.

### What is $name?

$description

### Who should use $name?

$name is designed for $audience. If you want dependable results with little setup, it is a good fit.

### How do I install $name?

Follow the installation section of the README. Most setups take only a few minutes.

### What does $name depend on?

$name is built on $tech_stack. Exact requirements are listed in the project documentation.

### Where can I get help?

Open an issue in the project repository or check the documentation first. Maintainers and community members respond to questions regularly.

### How can I contribute?

Read the contributing guide, pick an open issue, and submit a pull request. Documentation improvements are especially welcome.
""")

BLOG = Template("""\
# Introducing $name

## Introduction

Every project reaches a point where the old way of working stops scaling. Manual steps pile up, knowledge lives in a few heads, and newcomers struggle to get started. $name was created to change that. $description

In this post we look at what $name does, why it exists, and how you can start using it in your own work today.

## The Problem

Teams rarely lack good ideas. What they lack is time. Each release brings a handful of small chores that nobody enjoys: updating notes, checking configuration, explaining the same setup steps to another new contributor. None of these tasks is hard on its own, but together they drain attention from the work that actually moves a project forward.

Traditional solutions tend to add more process. More checklists, more meetings, more documents that go stale the moment they are written. We wanted something different: a tool that removes work instead of adding it.

## What $name Does

$name focuses on a small set of jobs and does them well:

$feature_bullets

Each feature is designed to be useful on its own. You can adopt one part of $name without committing to everything at once, and grow into the rest as your needs change.

## How It Works

Under the hood, $name is built on $tech_stack. The design favors clear interfaces and predictable behavior. Configuration comes with sensible defaults, so a first run needs almost no setup, while experienced users can adjust every detail through documented options.

Errors are treated as first class information. When something goes wrong, $name reports what happened and where, so problems can be fixed quickly instead of being rediscovered later.

## Who It Is For

$name is aimed at $audience. Whether you maintain a small library or coordinate a larger effort, the goal is the same: spend less time on routine chores and more time on the problems you care about.

Early users report that the biggest change is not speed but confidence. When the routine parts of a release are handled consistently, reviews become shorter, onboarding becomes easier, and fewer surprises reach production. That steady, predictable rhythm is exactly what $name was built to provide.

## Conclusion

$name exists to make everyday work simpler. It removes repetitive steps, keeps information close to the code, and helps new contributors become productive faster. Install it, try the quick start guide, and tell the maintainers what you think. Your feedback shapes where the project goes next.
""")

GENERIC = Template("""\
# $name

$description

## Overview

$name is built for $audience. It focuses on a small set of well defined jobs and aims to do them reliably.

## Highlights

$feature_bullets

## Next Steps

Read the project README for installation instructions, then explore the documentation for configuration details and examples.
""")

TEMPLATES: dict[str, Template] = {
    "homepage": HOMEPAGE,
    "about": ABOUT,
    "faq": FAQ,
    "blog": BLOG,
    "generic": GENERIC,
}


def feature_bullets(features: Optional[Iterable[str]]) -> str:
    items = [f.strip() for f in (features or []) if f and f.strip()]
    if not items:
        items = list(DEFAULT_FEATURES)
    return "\n".join(f"- **{_label(item)}**{_rest(item)}" for item in items)


def _label(feature: str) -> str:
    head, sep, _ = feature.partition(":")
    return (head if sep else feature).replace("*", "").strip()


def _rest(feature: str) -> str:
    _, sep, tail = feature.partition(":")
    tail = tail.replace("*", "").strip()
    return f": {tail}" if sep and tail else ""


def render_fallback(content_type: str, **values: Any) -> str:
    """Render the template for a content type, filling gaps with defaults.

    Unknown content types use the generic template. Recognised values are
    name, description, features (list of strings), audience and tech_stack.
    """
    template = TEMPLATES.get(content_type, GENERIC)
    tech_stack = values.get("tech_stack")
    if isinstance(tech_stack, (list, tuple)):
        tech_stack = ", ".join(str(t) for t in tech_stack if t)
    mapping = {
        "name": values.get("name") or DEFAULT_NAME,
        "description": values.get("description") or DEFAULT_DESCRIPTION,
        "audience": values.get("audience") or DEFAULT_AUDIENCE,
        "tech_stack": tech_stack or DEFAULT_TECH_STACK,
        "feature_bullets": feature_bullets(values.get("features")),
    }
    return template.safe_substitute(mapping)
