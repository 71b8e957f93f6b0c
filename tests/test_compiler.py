import io

import pytest

from jackc.compiler import CompilationContext, Compiler, compile_source
from jackc.errors import LexError, ParseError, SymbolError
from jackc.symbol_table import Kind
from jackc.vm_writer import VMWriter


#helper compiles a class to its instruction lines
def compile_lines(source: str) -> list[str]:
    return compile_source(source).splitlines()


#operators apply strictly left to right
def test_subtraction_is_left_to_right() -> None:
    lines = compile_lines(
        """
        class Main {
            function int f() {
                return 1 - 2 - 3;
            }
        }
        """
    )
    assert lines == [
        "function Main.f 0",
        "push constant 1",
        "push constant 2",
        "sub",
        "push constant 3",
        "sub",
        "return",
    ]


#no arithmetic precedence: 2 + 3 * 4 is (2 + 3) * 4
def test_no_operator_precedence() -> None:
    lines = compile_lines(
        """
        class Main {
            function int f() {
                return 2 + 3 * 4 / 5;
            }
        }
        """
    )
    assert lines[1:] == [
        "push constant 2",
        "push constant 3",
        "add",
        "push constant 4",
        "call Math.multiply 2",
        "push constant 5",
        "call Math.divide 2",
        "return",
    ]


#comparison and logic operators map to single commands
def test_logical_operators() -> None:
    lines = compile_lines(
        """
        class Main {
            function boolean f(int a, int b) {
                return (a < b) | (a > b) & (a = b);
            }
        }
        """
    )
    assert lines[1:] == [
        "push argument 0",
        "push argument 1",
        "lt",
        "push argument 0",
        "push argument 1",
        "gt",
        "or",
        "push argument 0",
        "push argument 1",
        "eq",
        "and",
        "return",
    ]


#receiver variables add one implicit argument; class names do not
def test_call_argument_counting() -> None:
    lines = compile_lines(
        """
        class Main {
            field Point p;
            method void m(int x, int y) {
                do p.foo(x, y);
                return;
            }
            function void g(int x) {
                do Foo.bar(x);
                return;
            }
        }
        """
    )
    assert lines == [
        "function Main.m 0",
        "push argument 0",
        "pop pointer 0",
        "push this 0",
        "push argument 1",
        "push argument 2",
        "call Point.foo 3",
        "pop temp 0",
        "push constant 0",
        "return",
        "function Main.g 0",
        "push argument 0",
        "call Foo.bar 1",
        "pop temp 0",
        "push constant 0",
        "return",
    ]


#an unqualified call is a method call on the current object
def test_unqualified_call_passes_this() -> None:
    lines = compile_lines(
        """
        class Game {
            method void run() {
                do step();
                return;
            }
        }
        """
    )
    assert lines == [
        "function Game.run 0",
        "push argument 0",
        "pop pointer 0",
        "push pointer 0",
        "call Game.step 1",
        "pop temp 0",
        "push constant 0",
        "return",
    ]


#constructors allocate the field block; methods bind argument 0
def test_constructor_and_method_prologues() -> None:
    lines = compile_lines(
        """
        class Point {
            field int x, y;
            constructor Point new(int ax, int ay) {
                let x = ax;
                let y = ay;
                return this;
            }
            method int getX() {
                return x;
            }
        }
        """
    )
    assert lines == [
        "function Point.new 0",
        "push constant 2",
        "call Memory.alloc 1",
        "pop pointer 0",
        "push argument 0",
        "pop this 0",
        "push argument 1",
        "pop this 1",
        "push pointer 0",
        "return",
        "function Point.getX 0",
        "push argument 0",
        "pop pointer 0",
        "push this 0",
        "return",
    ]


def test_if_else_end_to_end() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                var int x;
                if (true) { let x = 1; } else { let x = 2; }
                return;
            }
        }
        """
    )
    assert lines == [
        "function Main.main 1",
        "push constant 1",
        "neg",
        "not",
        "if-goto Main_1",
        "push constant 1",
        "pop local 0",
        "goto Main_0",
        "label Main_1",
        "push constant 2",
        "pop local 0",
        "label Main_0",
        "push constant 0",
        "return",
    ]


#both labels are allocated even when there is no else branch
def test_if_without_else_still_uses_two_labels() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                if (false) { return; }
                while (false) { }
                return;
            }
        }
        """
    )
    assert lines[1:8] == [
        "push constant 0",
        "not",
        "if-goto Main_1",
        "push constant 0",
        "return",
        "goto Main_0",
        "label Main_1",
    ]
    assert lines[8] == "label Main_0"
    assert lines[9] == "label Main_2"


def test_while_loop() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                var int i;
                let i = 0;
                while (i < 10) {
                    let i = i + 1;
                }
                return;
            }
        }
        """
    )
    assert lines == [
        "function Main.main 1",
        "push constant 0",
        "pop local 0",
        "label Main_0",
        "push local 0",
        "push constant 10",
        "lt",
        "not",
        "if-goto Main_1",
        "push local 0",
        "push constant 1",
        "add",
        "pop local 0",
        "goto Main_0",
        "label Main_1",
        "push constant 0",
        "return",
    ]


#array stores keep the value in temp 0 while `that` is rebound
def test_array_element_store_and_load() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                var Array a;
                var int i;
                let a[i] = a[i + 1];
                return;
            }
        }
        """
    )
    assert lines == [
        "function Main.main 2",
        "push local 1",
        "push local 0",
        "add",
        "push local 1",
        "push constant 1",
        "add",
        "push local 0",
        "add",
        "pop pointer 1",
        "push that 0",
        "pop temp 0",
        "pop pointer 1",
        "push temp 0",
        "pop that 0",
        "push constant 0",
        "return",
    ]


#strings are built with one appendChar call per character
def test_string_constant() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                do Output.printString("Hi");
                return;
            }
        }
        """
    )
    assert lines[1:8] == [
        "push constant 2",
        "call String.new 1",
        "push constant 72",
        "call String.appendChar 2",
        "push constant 105",
        "call String.appendChar 2",
        "call Output.printString 1",
    ]


def test_keyword_constants_and_unary_operators() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                var int n;
                var boolean b;
                let b = ~false;
                let n = -n;
                let b = null;
                return;
            }
        }
        """
    )
    assert lines == [
        "function Main.main 2",
        "push constant 0",
        "not",
        "pop local 1",
        "push local 0",
        "neg",
        "pop local 0",
        "push constant 0",
        "pop local 1",
        "push constant 0",
        "return",
    ]


#statics live in the static segment and persist across subroutines
def test_static_variables() -> None:
    lines = compile_lines(
        """
        class Counter {
            static int total, calls;
            function void bump() {
                let calls = total + 1;
                return;
            }
        }
        """
    )
    assert lines[1:4] == ["push static 0", "push constant 1", "add"]
    assert lines[4] == "pop static 1"


#the local count covers every var declaration of the subroutine
def test_local_count_spans_declarations() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                var int a, b;
                var char c;
                let c = a;
                return;
            }
        }
        """
    )
    assert lines[0] == "function Main.main 3"
    assert lines[1:3] == ["push local 0", "pop local 2"]


#a parameter named like a field hides the field
def test_argument_shadows_field() -> None:
    lines = compile_lines(
        """
        class P {
            field int x;
            method int get(int x) {
                return x;
            }
            method int field_x() {
                return x;
            }
        }
        """
    )
    assert lines[3] == "push argument 1"
    assert lines[8] == "push this 0"


#locals of one subroutine are invisible in the next
def test_scope_isolation_between_subroutines() -> None:
    source = """
        class Main {
            field int shared;
            method void a() {
                var int tmp;
                let tmp = shared;
                return;
            }
            method void b() {
                let tmp = shared;
                return;
            }
        }
        """
    with pytest.raises(SymbolError) as info:
        compile_source(source)
    assert "tmp" in info.value.message
    assert info.value.span.start.line == 10


def test_compilation_is_deterministic() -> None:
    source = """
        class Main {
            function void main() {
                var int i;
                while (i < 3) {
                    if (i = 1) { do Output.printInt(i); }
                    let i = i + 1;
                }
                return;
            }
        }
        """
    assert compile_source(source) == compile_source(source)


#every label is defined once and jumped to at least once
def test_labels_are_unique_and_referenced() -> None:
    lines = compile_lines(
        """
        class Main {
            function void main() {
                var int i;
                while (i < 3) {
                    if (i = 1) { let i = 2; } else { while (false) { } }
                    let i = i + 1;
                }
                if (true) { return; }
                return;
            }
            function void other() {
                while (true) { }
                return;
            }
        }
        """
    )
    defined = [line.split()[1] for line in lines if line.startswith("label ")]
    jumps = {line.split()[1] for line in lines if line.startswith(("goto ", "if-goto "))}
    assert len(defined) == 10
    assert len(set(defined)) == len(defined)
    assert set(defined) == jumps
    assert all(label.startswith("Main_") for label in defined)


def test_compilation_context_labels() -> None:
    context = CompilationContext(class_name="Ball")
    assert context.new_label() == "Ball_0"
    assert context.new_label() == "Ball_1"
    assert context.qualify("move") == "Ball.move"


#the compiler owns its own symbol table and writes to any sink
def test_compiler_state_after_compilation() -> None:
    sink = io.StringIO()
    writer = VMWriter(sink)
    compiler = Compiler.from_source(
        """
        class Square {
            field int x, y;
            static int count;
            method void draw(int color) {
                var int i;
                return;
            }
        }
        """,
        writer,
    )
    compiler.compile()
    assert writer.count == 5
    assert len(sink.getvalue().splitlines()) == writer.count
    assert compiler.context.class_name == "Square"
    assert compiler.context.subroutine_name == "Square.draw"
    assert compiler.symbols.kind_of("this") is Kind.ARG
    assert compiler.symbols.index_of("color") == 1
    assert compiler.symbols.var_count(Kind.FIELD) == 2
    assert sink.getvalue().startswith("function Square.draw 1\n")


def test_missing_semicolon_is_parse_error() -> None:
    with pytest.raises(ParseError) as info:
        compile_source(
            """
            class Main {
                function void main() {
                    do Output.printInt(1)
                }
            }
            """
        )
    assert "expected ';' after do statement" in info.value.message
    assert "'}'" in info.value.message
    assert info.value.span.start.line == 5


#a bare return followed by a brace reads the brace as its value
def test_unfinished_return_expects_expression() -> None:
    with pytest.raises(ParseError) as info:
        compile_source("class Main { function void main() { return } }")
    assert info.value.message == "expected expression, got symbol '}'"


def test_trailing_tokens_after_class_are_error() -> None:
    with pytest.raises(ParseError):
        compile_source("class A { } class B { }")


def test_integer_out_of_range_is_error() -> None:
    with pytest.raises(ParseError) as info:
        compile_source(
            """
            class Main {
                function int f() { return 32768; }
            }
            """
        )
    assert "out of range" in info.value.message


#digit runs of any length end in the same range error
def test_huge_integer_literal_is_parse_error() -> None:
    source = "class M { function int f() { return " + "9" * 5000 + "; } }"
    with pytest.raises(ParseError) as info:
        compile_source(source)
    assert "out of range" in info.value.message
    assert len(info.value.message) < 80


def test_largest_integer_is_accepted() -> None:
    lines = compile_lines("class Main { function int f() { return 32767; } }")
    assert lines[1] == "push constant 32767"


def test_undefined_variable_is_error() -> None:
    with pytest.raises(SymbolError):
        compile_source("class Main { function int f() { return missing; } }")


def test_duplicate_local_is_error() -> None:
    with pytest.raises(SymbolError) as info:
        compile_source("class Main { function void f() { var int a, a; return; } }")
    assert info.value.span is not None


@pytest.mark.parametrize(
    "source",
    [
        "Main { }",
        "class { }",
        "class Main { field x; }",
        "class Main { function void f( { return; } }",
        "class Main { function void f() { let 5 = 3; return; } }",
        "class Main { function void f() { do 5; return; } }",
        "class Main { function void f() { do f; return; } }",
        "class Main { function int f() { return int; } }",
        "class Main { function void f() { if (true) let x = 1; } }",
        "class Main { function void f() { return; }",
    ],
)
def test_malformed_programs_are_rejected(source: str) -> None:
    with pytest.raises(ParseError):
        compile_source(source)


#lexical errors surface through the compiler unchanged
def test_lex_error_propagates() -> None:
    with pytest.raises(LexError):
        compile_source('class Main { function void f() { do Output.printString("oops); } }')
