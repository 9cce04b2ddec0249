"""Tests for root detection and hot-path propagation through local calls."""
import logging

import pytest

from framelint.analyzer.call_graph import HotMarkTable
from framelint.analyzer.engine import HotPathEngine, analyze
from framelint.analyzer.frame_loop import (
    FastEventDetector,
    FrameLoopDetector,
    TimerLoopDetector,
    detect_roots,
)
from framelint.analyzer.hazards import HazardMatcher
from framelint.analyzer.scope import ScopeTracker
from framelint.analyzer.syntax import node_key


def clone_engine(max_call_depth=5):
    return HotPathEngine([FrameLoopDetector(['useFrame'])], HazardMatcher(['clone']), max_call_depth)


@pytest.fixture
def engine_log(caplog):
    """Debug records of the framelint loggers, even after the CLI configured them."""
    logger = logging.getLogger('framelint')
    level, propagate = logger.level, logger.propagate
    logger.addHandler(caplog.handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield caplog
    logger.removeHandler(caplog.handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestRootDetection:

    def test_function_literals_are_roots(self, parse):
        root = parse("""
            useFrame((state, delta) => {});
            useFrame(function tick() {});
            other(() => {});
        """)
        roots = detect_roots(root, ScopeTracker().build(root), [FrameLoopDetector(['useFrame'])])

        assert [r.function.type for r in roots] == ['arrow_function', 'function_expression']
        assert all(r.origin == 'useFrame' and r.category == 'frame' for r in roots)
        assert roots[0].label == 'useFrame callback'

    def test_named_callback_is_not_a_root(self, parse):
        root = parse("function update() {} useFrame(update);")
        assert detect_roots(root, ScopeTracker().build(root), [FrameLoopDetector(['useFrame'])]) == []

    def test_member_call_counts(self, parse):
        root = parse("fiber.useFrame(() => {});")
        assert len(detect_roots(root, ScopeTracker().build(root), [FrameLoopDetector(['useFrame'])])) == 1

    def test_aliased_import_counts(self, parse):
        root = parse("""
            import { useFrame as onFrame } from '@react-three/fiber';
            onFrame(() => {});
        """)
        roots = detect_roots(root, ScopeTracker().build(root), [FrameLoopDetector(['useFrame'])])
        assert [r.origin for r in roots] == ['useFrame']

    def test_timer_and_event_roots_in_source_order(self, parse):
        root = parse("""
            function Pointer() {
              setInterval(() => tick(), 16);
              return <mesh onPointerMove={(e) => move(e)} onClick={() => click()} />;
            }
        """)
        detectors = [FastEventDetector(['onPointerMove']), TimerLoopDetector(['setInterval'])]
        roots = detect_roots(root, ScopeTracker().build(root), detectors)

        assert [(r.origin, r.category) for r in roots] == [
            ('setInterval', 'timer'),
            ('onPointerMove', 'event'),
        ]


class TestPropagation:

    def test_direct_call_is_depth_zero(self, parse):
        hazards = analyze(parse("registerFrame(() => { duplicate(obj); });"),
                          frame_loop_apis=['registerFrame'], banned_operations=['duplicate'])

        assert len(hazards) == 1
        assert hazards[0].depth == 0
        assert hazards[0].operation == 'duplicate'
        assert hazards[0].line == 1

    def test_helper_call_is_depth_one(self, parse):
        hazards = analyze(parse("""
            function helper() { duplicate(obj); }
            registerFrame(() => { helper(); });
        """), frame_loop_apis=['registerFrame'], banned_operations=['duplicate'])

        assert [(h.operation, h.depth) for h in hazards] == [('duplicate', 1)]
        assert hazards[0].chain == ('registerFrame callback', 'helper')

    def test_unreached_function_is_cold(self, parse):
        hazards = analyze(parse("""
            function unused() { duplicate(obj); }
            registerFrame(() => {});
        """), frame_loop_apis=['registerFrame'], banned_operations=['duplicate'])
        assert hazards == []

    def test_nested_callbacks_share_the_root_depth(self, parse):
        hazards = analyze(parse("useFrame(() => { items.forEach((i) => i.clone()); });"))
        assert [(h.operation, h.depth) for h in hazards] == [('clone', 0)]

    def test_expression_bodied_root(self, parse):
        hazards = analyze(parse("useFrame(() => target.clone());"))
        assert len(hazards) == 1

    def test_method_reached_through_this(self, parse):
        hazards = analyze(parse("""
            class Rig {
              mount() { useFrame(() => { this.follow(); }); }
              follow() { this.pos.copy(this.target.clone()); }
            }
        """))
        assert [h.depth for h in hazards] == [1]

    def test_alias_and_use_callback_are_followed(self, parse):
        hazards = analyze(parse("""
            function Scene() {
              const step = useCallback(() => { v.clone(); }, []);
              const tick = step;
              useFrame(() => { tick(); });
            }
        """))
        assert [h.depth for h in hazards] == [1]


class TestDepthBound:

    SOURCE = """
        function c() { v.clone(); }
        function b() { c(); }
        function a() { b(); }
        useFrame(() => { a(); });
    """

    def test_reachable_within_bound(self, parse):
        hazards = analyze(parse(self.SOURCE), max_call_depth=3)
        assert [h.depth for h in hazards] == [3]

    def test_pruned_beyond_bound(self, parse, engine_log):
        result = clone_engine(max_call_depth=2).analyze(parse(self.SOURCE))

        assert result.hazards == []
        assert "not following c() at line 3: depth 3 exceeds 2" in engine_log.text

    def test_zero_depth_only_checks_the_callback(self, parse):
        root = parse(self.SOURCE + "useFrame(() => { w.clone(); });")
        hazards = analyze(root, max_call_depth=0)
        assert [(h.line, h.depth) for h in hazards] == [(6, 0)]

    LAYERED = """
        function c() { v.clone(); }
        function b() { w.clone(); c(); }
        function a() { x.clone(); b(); }
        useFrame(() => { y.clone(); a(); });
    """

    def test_hazards_at_every_depth(self, parse):
        hazards = analyze(parse(self.LAYERED), max_call_depth=3)
        assert [(h.line, h.depth) for h in hazards] == [(2, 3), (3, 2), (4, 1), (5, 0)]

    @pytest.mark.parametrize("bound", [1, 2, 3, 4])
    def test_lowering_the_bound_drops_exactly_the_deepest(self, parse, bound):
        root = parse(self.LAYERED)
        wider = {(h.line, h.depth) for h in analyze(root, max_call_depth=bound)}
        narrower = {(h.line, h.depth) for h in analyze(root, max_call_depth=bound - 1)}

        assert narrower <= wider
        assert wider - narrower == {(line, depth) for line, depth in wider if depth == bound}


class TestFixedPoint:

    def test_mutual_recursion_terminates(self, parse, engine_log):
        result = clone_engine().analyze(parse("""
            function ping(n) { v.clone(); pong(n - 1); }
            function pong(n) { ping(n - 1); }
            useFrame(() => { ping(3); });
        """))

        assert [h.depth for h in result.hazards] == [1]
        assert any(set(cycle) == {'ping', 'pong'} for cycle in result.resolver.cycles())
        [logged] = [r.getMessage() for r in engine_log.records if 'call cycle' in r.getMessage()]
        assert 'ping' in logged and 'pong' in logged

    def test_self_recursion_terminates(self, parse):
        hazards = analyze(parse("""
            function loop() { loop(); v.clone(); }
            useFrame(() => { loop(); });
        """))
        assert len(hazards) == 1

    def test_smallest_depth_wins(self, parse):
        hazards = analyze(parse("""
            function helper() { v.clone(); }
            function middle() { helper(); }
            useFrame(() => { middle(); helper(); });
        """))
        assert [h.depth for h in hazards] == [1]

    def test_shared_helper_reported_once(self, parse):
        hazards = analyze(parse("""
            function helper() { v.clone(); }
            useFrame(() => { helper(); });
            useFrame(() => { helper(); });
        """))
        assert len(hazards) == 1

    def test_analysis_is_repeatable(self, parse):
        root = parse(TestDepthBound.SOURCE)
        first = [(h.line, h.depth) for h in analyze(root)]
        second = [(h.line, h.depth) for h in analyze(root)]
        assert first == second == [(2, 3)]

    def test_call_graph_records_edges(self, parse):
        result = clone_engine().analyze(parse("""
            function helper() {}
            useFrame(() => { helper(); helper(); });
        """))
        graph = result.resolver.graph
        labels = {data['label'] for _, data in graph.nodes(data=True)}
        assert {'useFrame callback', 'helper'} <= labels

        edge = [data for _, callee, data in graph.edges(data=True)
                if graph.nodes[callee]['label'] == 'helper'][0]
        assert edge['lines'] == [3, 3]


class TestHotMarkTable:

    def test_marks_only_decrease(self, parse, find):
        node = find(parse("a();"), 'call_expression')
        region = node_key(node)
        table = HotMarkTable()

        assert table.mark(node, 3, region)
        assert not table.mark(node, 5, region)
        assert not table.mark(node, 3, region)
        assert table.mark(node, 1, region)
        assert table.depth_of(node) == 1
        assert node in table and len(table) == 1

    @pytest.mark.parametrize("depth", [0, 2])
    def test_unmarked_node_has_no_depth(self, parse, find, depth):
        root = parse("a(); b();")
        table = HotMarkTable()
        table.mark(find(root, 'call_expression', 'a()'), depth, ('x', 0, 0))
        assert table.depth_of(find(root, 'call_expression', 'b()')) is None
