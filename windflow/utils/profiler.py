"""
Profiling utilities for windflow.

Tracks wall and CPU time per solver stage, completed time steps, relaxation
iterations and process memory, and exports them as a pandas DataFrame.
"""

import os
import platform
import time
from datetime import datetime

import pandas as pd
import psutil


class Profiler:
    """
    Profiler class for tracking performance metrics of a stepping solver.

    Parameters:
    -----------
    algorithm_name : str
        Name of the algorithm being profiled
    grid : GridInfo
        Grid of the profiled solver
    fluid : FluidProperties
        Fluid properties
    """

    def __init__(self, algorithm_name, grid, fluid):
        self.algorithm_name = algorithm_name
        self.grid = grid
        self.fluid = fluid
        self.initialize()

    def initialize(self):
        """Initialize profiling data structures."""
        self._start_time = None
        self._start_cpu_time = None
        self._section_start_time = None
        self._section_start_cpu_time = None
        self.sections = {}
        self.profiling_data = {
            'total_time': 0.0,
            'cpu_time': 0.0,
            'steps': 0,
            'memory_usage': [],
            'timestamp': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            'system_info': {
                'platform': platform.platform(),
                'processor': platform.processor(),
                'python_version': platform.python_version(),
                'memory_total': psutil.virtual_memory().total / (1024 ** 3)  # GB
            },
            'iterations': {'momentum': [], 'pressure': []},
        }

    def start(self):
        """Start profiling."""
        self._start_time = time.time()
        self._start_cpu_time = time.process_time()

    def end(self):
        """End profiling and calculate total time."""
        if self._start_time is not None:
            self.profiling_data['total_time'] = time.time() - self._start_time
            self.profiling_data['cpu_time'] = time.process_time() - self._start_cpu_time

    def start_section(self):
        """Start timing a section."""
        self._section_start_time = time.time()
        self._section_start_cpu_time = time.process_time()
        return self._section_start_time

    def end_section(self, section_name):
        """
        End timing a section and add to the appropriate counter.

        Parameters:
        -----------
        section_name : str
            Name of the section being timed
        """
        if self._section_start_time is None:
            return
        record = self.sections.setdefault(section_name, {'wall_time': 0.0, 'cpu_time': 0.0, 'calls': 0})
        record['wall_time'] += time.time() - self._section_start_time
        record['cpu_time'] += time.process_time() - self._section_start_cpu_time
        record['calls'] += 1
        self._section_start_time = None
        self._section_start_cpu_time = None

    def record_step(self, momentum_iterations, pressure_iterations):
        """Register a completed time step with the relaxation iterations it used."""
        self.profiling_data['steps'] += 1
        self.profiling_data['iterations']['momentum'].append(momentum_iterations)
        self.profiling_data['iterations']['pressure'].append(pressure_iterations)
        self.profiling_data['memory_usage'].append(self.get_memory_usage())

    def get_memory_usage(self):
        """Resident memory of this process in MB."""
        return psutil.Process(os.getpid()).memory_info().rss / (1024 ** 2)

    def to_dataframe(self):
        """Per-section timings as a DataFrame indexed by section name."""
        df = pd.DataFrame.from_dict(self.sections, orient='index',
                                    columns=['wall_time', 'cpu_time', 'calls'])
        df.index.name = 'section'
        steps = self.profiling_data['steps']
        df['wall_time_per_step'] = df['wall_time'] / steps if steps else 0.0
        return df

    def summary(self):
        nx, ny, nz = self.grid.resolution
        momentum = self.profiling_data['iterations']['momentum']
        pressure = self.profiling_data['iterations']['pressure']
        return {
            'algorithm': self.algorithm_name,
            'timestamp': self.profiling_data['timestamp'],
            'grid': f"{nx}x{ny}x{nz}",
            'reynolds_number': self.fluid.get_reynolds_number(),
            'steps': self.profiling_data['steps'],
            'total_time': self.profiling_data['total_time'],
            'avg_momentum_iterations': sum(momentum) / len(momentum) if momentum else 0.0,
            'avg_pressure_iterations': sum(pressure) / len(pressure) if pressure else 0.0,
            'peak_memory_mb': max(self.profiling_data['memory_usage'], default=0.0),
            **self.profiling_data['system_info'],
        }

    def save(self, filename=None, profile_dir='results/profiles'):
        """
        Save the per-section timings to a CSV file.

        Parameters:
        -----------
        filename : str, optional
            Name of the file to save the data to. If None, a default name is generated.
        profile_dir : str, optional
            Directory to save profiling data

        Returns:
        --------
        str
            Path to the saved file
        """
        if filename is None:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            nx, ny, nz = self.grid.resolution
            filename = os.path.join(
                profile_dir,
                f"{self.algorithm_name}_grid{nx}x{ny}x{nz}_{timestamp}_profile.csv"
            )
        os.makedirs(os.path.dirname(os.path.abspath(filename)), exist_ok=True)
        self.to_dataframe().to_csv(filename)
        return filename
