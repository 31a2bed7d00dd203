"""
Test fixtures for driftgraph.

This module provides sample TypeScript, JavaScript and Python sources plus
markdown documentation used across the test suite.
"""

# TypeScript module exercising every declaration kind
MATH_TS = '''/**
 * Adds two numbers.
 */
export function add(a: number, b: number): number {
  return a + b;
}

function helper(x: string, y?: number, z = 5): void {
  if (x) {
    console.log(x);
  } else if (y) {
    add(1, 2);
  }
  for (let i = 0; i < 3; i++) {}
}

export const multiply = async (a: number, b: number): Promise<number> => a * b;

export class Calculator extends Base implements Shape {
  private total: number = 0;
  static readonly version: string = "1";

  add(value: number): number {
    this.total += value;
    return this.total;
  }

  async reset(): Promise<void> {}
}

export interface Shape {
  area(): number;
  name: string;
}

export type Id = string | number;

import { format } from "./format";
import * as path from "path";
import Default, { a as b } from "./lib";
'''

# JavaScript module with a local export clause, switch and ternary
MAIN_JS = '''/** Sum values. */
function sum(values) {
  return values.reduce((a, b) => a + b, 0);
}

const double = (x) => x * 2;

export default function main() {
  switch (mode) {
    case "a":
      sum([1]);
      break;
    default:
      double(2);
  }
  return mode ? sum([]) : double(1);
}

export { sum };
'''

BROKEN_TS = '''export function add(a: number, b: number {
  return a +
'''

# Python module with __all__, a Protocol and a TypeAlias
GREETER_PY = '''"""Greeting utilities."""
from typing import ClassVar, Final, Protocol, TypeAlias

import os
from .helpers import normalize as norm

__all__ = ["greet", "Greeter", "Named"]

UserId: TypeAlias = int


def greet(name: str, excited: bool = False) -> str:
    """Return a greeting."""
    if excited:
        return f"Hello, {name}!"
    return norm(f"Hello, {name}")


async def _fetch(url, *args, **kwargs):
    for attempt in range(3):
        try:
            return await client.get(url)
        except TimeoutError:
            continue
    raise RuntimeError("unreachable")


class Greeter(Base):
    """Greets people."""

    prefix: ClassVar[str] = "Hi"
    limit: Final[int] = 3

    def greet(self, name: str) -> str:
        return greet(name)

    @staticmethod
    def build(value):
        return Greeter()


class Named(Protocol):
    name: str

    def describe(self) -> str: ...
'''

BROKEN_PY = '''def broken(:
    return 1
'''

# Two versions of the same module for structural diffing
ADD_V1_TS = '''/** Adds numbers. */
export function add(a: number, b: number): number {
  return a + b;
}

function helper(): void {}
'''

ADD_V2_TS = '''/** Adds numbers. */
export function add(a: number, b: number, c: number): number {
  return a + b + c;
}
'''

ADD_BODY_CHANGED_TS = '''/** Adds numbers. */
export function add(a: number, b: number): number {
  return b + a;
}

function helper(): void {}
'''

API_DOC_MD = '''# API

Intro with `Calculator`.

## add(a, b)

Adds numbers. See [math](src/math.ts) and `lib/util.ts`.

```ts
const total = add(1, 2);
# not a heading
```

## Notes
Plain text.
'''

# Code that should produce the same semantic hash
SEMANTICALLY_EQUIVALENT_1 = '''
def compute(x, y):
    """Compute something."""
    return x + y
'''

SEMANTICALLY_EQUIVALENT_2 = '''
def compute(x, y):
    """Different docstring."""
    # explain the sum

    return x + y
'''

# Code that should produce different semantic hashes
SEMANTICALLY_DIFFERENT = '''
def compute(x, y):
    """Compute something."""
    return x * y  # Different operation
'''
