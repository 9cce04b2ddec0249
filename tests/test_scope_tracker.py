"""Tests for lexical scopes, bindings and call resolution."""
import pytest

from framelint.analyzer.scope import BindingKind, ScopeKind, ScopeTracker


def call_named(root, find, text):
    return find(root, 'call_expression', text)


@pytest.fixture
def build(parse):
    def _build(source):
        root = parse(source)
        return root, ScopeTracker().build(root)
    return _build


class TestShadowing:

    def test_innermost_binding_wins(self, build, find):
        root, tracker = build("""
            function helper() {}
            function outer() {
              const helper = 1;
              helper();
            }
        """)
        inner_call = call_named(root, find, 'helper()')

        assert tracker.resolve_callee(inner_call) is None
        binding = tracker.resolve_identifier(inner_call.child_by_field_name('function'))
        assert binding.kind is BindingKind.VARIABLE

    def test_outer_binding_visible_outside(self, build, find):
        root, tracker = build("""
            function outer() { const helper = 1; }
            function helper() {}
            helper();
        """)
        binding = tracker.resolve_callee(call_named(root, find, 'helper()'))
        assert binding.kind is BindingKind.FUNCTION
        assert binding.function.type == 'function_declaration'

    def test_parameter_shadows_function(self, build, find):
        root, tracker = build("""
            function cb() {}
            function run(cb) { cb(); }
        """)
        call = call_named(root, find, 'cb()')
        assert tracker.resolve_callee(call) is None
        assert tracker.resolve_identifier(call.child_by_field_name('function')).kind is BindingKind.PARAMETER

    def test_block_scoped_let_is_not_visible_after_block(self, build, find):
        root, tracker = build("""
            function f() {
              if (x) { let h = () => {}; }
              h();
            }
        """)
        assert tracker.resolve_callee(call_named(root, find, 'h()')) is None

    def test_var_is_function_scoped(self, build, find):
        root, tracker = build("""
            function f() {
              if (x) { var g = () => {}; }
              g();
            }
        """)
        binding = tracker.resolve_callee(call_named(root, find, 'g()'))
        assert binding is not None
        assert binding.function.type == 'arrow_function'
        assert binding.scope.kind is ScopeKind.FUNCTION


class TestHoisting:

    def test_call_before_function_declaration(self, build, find):
        root, tracker = build("update(); function update() {}")
        assert tracker.resolve_callee(call_named(root, find, 'update()')).name == 'update'

    def test_forward_reference_to_const_helper(self, build, find):
        root, tracker = build("""
            function tick() { later(); }
            const later = () => {};
        """)
        binding = tracker.resolve_callee(call_named(root, find, 'later()'))
        assert binding.kind is BindingKind.FUNCTION
        assert binding.function.type == 'arrow_function'

    def test_named_function_expression_sees_itself(self, build, find):
        root, tracker = build("const run = function again(n) { again(n - 1); };")
        binding = tracker.resolve_callee(call_named(root, find, 'again(n - 1)'))
        assert binding.name == 'again'


class TestAliases:

    def test_alias_is_followed(self, build, find):
        root, tracker = build("""
            function helper() {}
            const tick = helper;
            tick();
        """)
        binding = tracker.resolve_callee(call_named(root, find, 'tick()'))
        assert binding.name == 'helper'

    def test_alias_cycle_resolves_to_nothing(self, build, find):
        root, tracker = build("""
            const a = b;
            const b = a;
            a();
        """)
        assert tracker.resolve_callee(call_named(root, find, 'a()')) is None

    def test_use_callback_wraps_a_function(self, build, find):
        root, tracker = build("""
            function Scene() {
              const step = useCallback((dt) => {}, []);
              step(1);
            }
        """)
        binding = tracker.resolve_callee(call_named(root, find, 'step(1)'))
        assert binding.kind is BindingKind.FUNCTION
        assert binding.function.type == 'arrow_function'

    def test_other_calls_are_not_functions(self, build, find):
        root, tracker = build("const v = makeVector(); v();")
        call = call_named(root, find, 'v()')
        assert tracker.resolve_callee(call) is None
        binding = tracker.resolve_identifier(call.child_by_field_name('function'))
        assert binding.init_callee == 'makeVector'


class TestClassesAndImports:

    def test_this_method_resolves_in_class(self, build, find):
        root, tracker = build("""
            class Scene {
              update() { this.spin(); }
              spin() {}
            }
        """)
        binding = tracker.resolve_callee(call_named(root, find, 'this.spin()'))
        assert binding.kind is BindingKind.METHOD
        assert binding.name == 'spin'

    def test_methods_are_not_lexical_names(self, build, find):
        root, tracker = build("""
            class Scene {
              update() { spin(); }
              spin() {}
            }
        """)
        assert tracker.resolve_callee(call_named(root, find, 'spin()')) is None

    def test_other_member_calls_are_unresolved(self, build, find):
        root, tracker = build("function spin() {} obj.spin();")
        assert tracker.resolve_callee(call_named(root, find, 'obj.spin()')) is None

    def test_aliased_import_keeps_imported_name(self, build, find):
        root, tracker = build("""
            import { useFrame as onFrame } from '@react-three/fiber';
            onFrame(() => {});
        """)
        call = find(root, 'call_expression')
        binding = tracker.resolve_identifier(call.child_by_field_name('function'))

        assert binding.kind is BindingKind.IMPORT
        assert binding.imported_name == 'useFrame'
        assert binding.source_module == '@react-three/fiber'

    def test_default_and_namespace_imports(self, build):
        _, tracker = build("import React from 'react'; import * as THREE from 'three';")
        react = tracker.resolve('React', tracker.root_scope)
        three = tracker.resolve('THREE', tracker.root_scope)
        assert react.imported_name == 'default'
        assert three.source_module == 'three'


class TestDestructuring:

    def test_array_pattern_positions(self, build):
        _, tracker = build("const [pos, setPos] = useState(0);")
        pos = tracker.resolve('pos', tracker.root_scope)
        set_pos = tracker.resolve('setPos', tracker.root_scope)

        assert pos.pattern_index == 0
        assert set_pos.pattern_index == 1
        assert set_pos.init_callee == 'useState'

    def test_hole_in_array_pattern(self, build):
        _, tracker = build("const [, dispatch] = useReducer(reducer, {});")
        assert tracker.resolve('dispatch', tracker.root_scope).pattern_index == 1

    def test_object_pattern_parameters(self, build, find):
        root, tracker = build("function Box({ target, size = 1 }) { target(); }")
        call = call_named(root, find, 'target()')
        assert tracker.resolve_identifier(call.child_by_field_name('function')).kind is BindingKind.PARAMETER
        assert tracker.resolve('size', tracker.scope_for(call)).kind is BindingKind.PARAMETER


class TestScopeQueries:

    def test_walk_pairs_nodes_with_scopes(self, build):
        root, tracker = build("function f() { g(); }")
        kinds = {node.type: scope.kind for node, scope in tracker.walk(root)}
        assert kinds['program'] is ScopeKind.PROGRAM
        assert kinds['call_expression'] is ScopeKind.FUNCTION

    def test_nested_block_scope_chain(self, build, find):
        root, tracker = build("function f() { if (x) { let y = 1; g(y); } }")
        scope = tracker.scope_for(call_named(root, find, 'g(y)'))

        assert [s.kind for s in scope.chain()] == [
            ScopeKind.BLOCK, ScopeKind.FUNCTION, ScopeKind.PROGRAM,
        ]
        assert scope.lookup_local('y') is not None

    def test_typescript_scopes(self, parse_tsx, find):
        root = parse_tsx("""
            function helper(v: number): number { return v; }
            export function Box({ size }: { size: number }) {
              const scaled = (helper(size) as number);
              return <mesh scale={scaled} />;
            }
        """)
        tracker = ScopeTracker().build(root)
        binding = tracker.resolve_callee(find(root, 'call_expression', 'helper(size)'))
        assert binding.function.type == 'function_declaration'
