"""Command line entry point for the exam centre allotment console."""
import argparse
import asyncio
import sys
from typing import List, Tuple

from loguru import logger

from configurations.config import Config
from core.errors import AllotmentError
from core.session import AllotmentSession
from services.allotment_workflow import AllotmentWorkflow
from services.backend_client import AllotmentBackendClient
from simulation.population_sampler import PopulationSampler
from visualization.export_to_geojson import AllotmentExporter


def parse_centre(value: str) -> Tuple[float, float, int]:
    """Parse LAT,LON[,CAPACITY]."""
    parts = value.split(',')
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Expected LAT,LON[,CAPACITY], got '{value}'")
    try:
        lat, lon = float(parts[0]), float(parts[1])
        capacity = int(parts[2]) if len(parts) == 3 else Config.DEFAULT_CENTRE_CAPACITY
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid centre '{value}'")
    return lat, lon, capacity


class AllotmentPipeline:
    """Centres → students → graph → allotment → exports."""

    def __init__(self, backend_url: str = None, seed: int = None, export_dir: str = None):
        self.session = AllotmentSession(sampler=PopulationSampler(seed=seed))
        self.workflow = AllotmentWorkflow(self.session, AllotmentBackendClient(backend_url))
        self.exporter = AllotmentExporter(export_dir)

    def run(self, centres: List[Tuple[float, float, int]], student_count: int,
            offline: bool = False, graph_detail: str = None) -> dict:
        logger.info("🚀 Starting allotment pipeline")

        # 1️⃣ Centres
        for lat, lon, capacity in centres:
            self.session.add_centre(lat, lon, capacity)

        # 2️⃣ Simulated students
        sample = self.session.simulate_students(student_count)
        if sample.degraded:
            logger.warning(f"Only {len(sample.students)} of {student_count} students could be placed")

        results = {
            'stats': self.session.stats(),
            'radius_meters': sample.catchment.radius_meters,
            'termination': sample.termination.value,
        }

        if offline:
            logger.info("Offline mode: skipping graph build and allotment")
            return results

        # 3️⃣ Road graph and allotment
        graph = asyncio.run(self.workflow.build_graph(graph_detail=graph_detail))
        results['nodes_count'] = graph.nodes_count
        results['edges_count'] = graph.edges_count

        asyncio.run(self.workflow.run_allotment())

        # 4️⃣ Merged views and exports
        views = self.session.student_views()
        summary_df = self.session.merger.summarize(views, self.session.centres)
        self.exporter.prepare_summary_csv(summary_df, views)
        self.exporter.prepare_allotment_geojson(views, self.session.centres)

        results['stats'] = self.session.stats()
        results['summary_csv'] = self.exporter.export_summary_csv()
        results['allotment_geojson'] = self.exporter.export_allotment_geojson()
        results['over_capacity'] = self.session.merger.over_capacity(views, self.session.centres)

        logger.success(f"✅ Pipeline completed! Results saved to {self.exporter.export_dir}")
        return results


def main():
    parser = argparse.ArgumentParser(description="Exam Centre Allotment Console")
    parser.add_argument("--centre", action="append", type=parse_centre, default=[],
                        help="Centre as LAT,LON[,CAPACITY] (repeatable)")
    parser.add_argument("--students", type=int, default=Config.DEFAULT_STUDENT_COUNT,
                        help="Number of students to simulate")
    parser.add_argument("--seed", type=int, default=Config.RANDOM_SEED, help="Random seed for the simulation")
    parser.add_argument("--backend-url", default=Config.API_BASE_URL, help="Routing backend URL")
    parser.add_argument("--graph-detail", default=Config.GRAPH_DETAIL, help="Graph detail level for the backend")
    parser.add_argument("--export-dir", default=Config.EXPORT_DIR, help="Output directory")
    parser.add_argument("--offline", action="store_true", help="Only simulate students, do not call the backend")
    parser.add_argument("--api", action="store_true", help="Start FastAPI server instead")
    parser.add_argument("--port", type=int, default=Config.API_PORT,
                        help=f"Port for FastAPI server (default: {Config.API_PORT})")

    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=Config.LOG_LEVEL)

    if args.api:
        import uvicorn
        from api.allotment_routes import app
        logger.info(f"🚀 Starting FastAPI server on port {args.port}...")
        try:
            uvicorn.run(app, host=Config.API_HOST, port=args.port)
        except OSError as e:
            logger.error(f"❌ Server startup failed: {e}")
            sys.exit(1)
        return

    if not args.centre:
        parser.error("at least one --centre is required when not using --api")

    pipeline = AllotmentPipeline(args.backend_url, args.seed, args.export_dir)
    try:
        results = pipeline.run(args.centre, args.students, offline=args.offline, graph_detail=args.graph_detail)
    except AllotmentError as e:
        logger.error(f"❌ Pipeline failed: {e}")
        sys.exit(1)

    stats = results['stats']
    print("\nAllotment run completed")
    print(f"Centres: {stats['centres']}, students: {stats['students']} "
          f"(pwd {stats['pwd']}, female {stats['female']}, general {stats['general']})")
    print(f"Catchment radius: {results['radius_meters']:.0f} m ({results['termination']})")
    if not args.offline:
        print(f"Assigned: {stats['assigned']}")
        print(f"Summary report: {results['summary_csv']}")
        print(f"Allotment GeoJSON: {results['allotment_geojson']}")


if __name__ == "__main__":
    main()
